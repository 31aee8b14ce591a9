"""
Split session API endpoints.

A client creates a session, uploads one receipt, reviews the extracted items
and finishes with either an AI-suggested (simple) or a manual split.

Flow:
1. POST   /splits                              - new session (UPLOAD)
2. POST   /splits/{id}/receipt                 - extract items (REVIEWING)
3. PATCH  /splits/{id}/items/{index}           - fix names/prices
4. POST   /splits/{id}/confirm-items           - CHOOSING_STRATEGY
5a. POST  /splits/{id}/suggestion              - RESULT_SHOWN (simple)
5b. POST  /splits/{id}/manual, PUT /assignments, POST /finish-assignment,
    POST /confirm                              - RESULT_SHOWN (manual)
6. GET    /splits/{id}/summary                 - copyable result text

Authentication is optional. Anonymous callers are identified by the
X-Client-Id header (falling back to the session id) and get one completed
split before they must sign in.

Every command runs under the session's lock, so two requests against the
same session never interleave.
"""

import base64
import logging
from typing import Annotated, Dict, Optional, Type

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile, status

from bilbul.auth.dependencies import AuthenticatedUser, get_optional_user
from bilbul.config import settings
from bilbul.schemas.splits import (
    AssignmentRequest,
    ItemEditRequest,
    ParticipantRenameRequest,
    SessionCommandRequest,
    SplitDeleteResponse,
    SplitSessionResponse,
    SplitSummaryResponse,
)
from bilbul.services.session_store import SessionStore, get_session_store
from bilbul.split import (
    AuthenticationRequired,
    ExternalServiceFailure,
    IncompleteAssignment,
    Identity,
    InvalidAssignment,
    InvalidReceiptData,
    InvalidSessionState,
    QuantityExceedsRemaining,
    SplitError,
    SplitSession,
    VersionConflict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/splits", tags=["splits"])

_STATUS_BY_ERROR: Dict[Type[SplitError], int] = {
    InvalidReceiptData: status.HTTP_422_UNPROCESSABLE_ENTITY,
    QuantityExceedsRemaining: status.HTTP_409_CONFLICT,
    IncompleteAssignment: status.HTTP_409_CONFLICT,
    InvalidSessionState: status.HTTP_409_CONFLICT,
    VersionConflict: status.HTTP_409_CONFLICT,
    InvalidAssignment: status.HTTP_400_BAD_REQUEST,
    AuthenticationRequired: status.HTTP_401_UNAUTHORIZED,
}


def _http_error(error: SplitError) -> HTTPException:
    """Map a split workflow error to an HTTPException with the usual detail shape."""
    if isinstance(error, ExternalServiceFailure):
        status_code = (
            status.HTTP_504_GATEWAY_TIMEOUT if error.timed_out else status.HTTP_502_BAD_GATEWAY
        )
    else:
        status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=error.to_detail())


def _not_found(session_id: str) -> HTTPException:
    logger.warning(f"Split session not found: {session_id}")
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "not_found",
            "details": f"Split session {session_id} not found"
        }
    )


def _get_session(store: SessionStore, session_id: str) -> SplitSession:
    session = store.get(session_id)
    if session is None:
        raise _not_found(session_id)
    return session


def _session_lock(store: SessionStore, session_id: str):
    try:
        return store.lock(session_id)
    except KeyError:
        raise _not_found(session_id)


def _expected_version(body: Optional[SessionCommandRequest]) -> Optional[int]:
    return body.expected_version if body is not None else None


def _anonymous_client_id(request: Request, x_client_id: Optional[str], session_id: str) -> str:
    # Without X-Client-Id the caller address keys the free-split flag
    if x_client_id:
        return x_client_id
    if request.client is not None and request.client.host:
        return f"addr:{request.client.host}"
    return session_id


StoreDep = Annotated[SessionStore, Depends(get_session_store)]


@router.post(
    "",
    response_model=SplitSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a new split session",
    description="Creates an empty session in state UPLOAD. No authentication required."
)
async def create_split_session(store: StoreDep) -> SplitSessionResponse:
    session = store.create()
    return SplitSessionResponse.from_snapshot(session.snapshot())


@router.get(
    "/{session_id}",
    response_model=SplitSessionResponse,
    summary="Get the current snapshot of a split session"
)
async def get_split_session(session_id: str, store: StoreDep) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    return SplitSessionResponse.from_snapshot(session.snapshot())


@router.delete(
    "/{session_id}",
    response_model=SplitDeleteResponse,
    summary="Discard a split session"
)
async def delete_split_session(session_id: str, store: StoreDep) -> SplitDeleteResponse:
    _get_session(store, session_id)
    async with _session_lock(store, session_id):
        if not store.delete(session_id):
            raise _not_found(session_id)

    return SplitDeleteResponse(
        status="DELETED",
        session_id=session_id,
        message="Split session deleted successfully"
    )


@router.post(
    "/{session_id}/receipt",
    response_model=SplitSessionResponse,
    summary="Upload a receipt and extract its items",
    description="""
    Multipart form with either an `image` file or a `photo_url`
    (data URL or hosted image URL), plus `number_of_people` (1-5).
    Anonymous clients should send a stable `X-Client-Id`; without it the free
    split is tracked per caller address.

    - 422 invalid_receipt_data: nothing uploaded, or the image is not a receipt
    - 401 sign_in_required: this anonymous client already used its free split
    - 502/504 external_service_failure: extraction failed or timed out (retryable)
    """
)
async def submit_receipt(
    request: Request,
    session_id: str,
    store: StoreDep,
    number_of_people: Annotated[int, Form(description="How many people share the bill")],
    auth_user: Annotated[Optional[AuthenticatedUser], Depends(get_optional_user)],
    image: Annotated[Optional[UploadFile], File(description="Receipt image file")] = None,
    photo_url: Annotated[Optional[str], Form(description="Receipt image as a URL")] = None,
    expected_version: Annotated[Optional[int], Form()] = None,
    x_client_id: Annotated[Optional[str], Header()] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)

    if image is not None:
        if not image.content_type or not image.content_type.startswith("image/"):
            logger.warning(f"Invalid content type: {image.content_type}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": "invalid_file_type",
                    "details": "File must be an image (JPEG, PNG, etc.)"
                }
            )

        image_bytes = await image.read()
        max_size_bytes = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024
        if len(image_bytes) > max_size_bytes:
            logger.warning(f"Image too large: {len(image_bytes)} bytes")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": "file_too_large",
                    "details": f"Image must be smaller than {settings.MAX_IMAGE_SIZE_MB}MB"
                }
            )

        image_base64 = base64.b64encode(image_bytes).decode("utf-8")
        photo_url = f"data:{image.content_type};base64,{image_base64}"
        logger.info(
            f"Receipt upload for session {session_id}: "
            f"filename={image.filename}, size={len(image_bytes)} bytes"
        )

    identity = Identity(
        client_id=_anonymous_client_id(request, x_client_id, session_id),
        user_id=auth_user.user_id if auth_user is not None else None,
    )

    async with _session_lock(store, session_id):
        try:
            session.check_version(expected_version)
            snapshot = await session.submit_receipt(
                photo_url or "", number_of_people, identity
            )
        except SplitError as e:
            raise _http_error(e)

    return SplitSessionResponse.from_snapshot(snapshot)


@router.patch(
    "/{session_id}/items/{item_index}",
    response_model=SplitSessionResponse,
    summary="Edit a receipt item's name and/or price",
    description="Allowed from REVIEWING until the split is confirmed. Assignments are kept."
)
async def edit_item(
    session_id: str,
    item_index: int,
    body: ItemEditRequest,
    store: StoreDep,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(body.expected_version)
            snapshot = session.edit_item(item_index, name=body.name, price=body.price)
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.patch(
    "/{session_id}/participants/{participant_id}",
    response_model=SplitSessionResponse,
    summary="Rename a participant"
)
async def rename_participant(
    session_id: str,
    participant_id: int,
    body: ParticipantRenameRequest,
    store: StoreDep,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(body.expected_version)
            snapshot = session.rename_participant(participant_id, body.display_name)
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/confirm-items",
    response_model=SplitSessionResponse,
    summary="Confirm the reviewed items (REVIEWING -> CHOOSING_STRATEGY)"
)
async def confirm_items(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = session.confirm_items()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/suggestion",
    response_model=SplitSessionResponse,
    summary="Ask the AI for a simple split (CHOOSING_STRATEGY -> RESULT_SHOWN)",
    description="On failure the session stays in CHOOSING_STRATEGY and the call can be retried."
)
async def request_suggestion(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = await session.request_suggestion()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/manual",
    response_model=SplitSessionResponse,
    summary="Start a manual split (CHOOSING_STRATEGY -> MANUAL_ASSIGNING)"
)
async def begin_manual(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = session.begin_manual()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.put(
    "/{session_id}/assignments",
    response_model=SplitSessionResponse,
    summary="Assign units of an item to a participant",
    description="""
    Sets the quantity a participant takes of one item, replacing any earlier
    value for the same pair.

    - 409 quantity_exceeds_remaining: more units than are left
    - 400 invalid_assignment: unknown item or participant
    """
)
async def assign_item(
    session_id: str,
    body: AssignmentRequest,
    store: StoreDep,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(body.expected_version)
            snapshot = session.assign(body.item_index, body.participant_id, body.quantity)
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/finish-assignment",
    response_model=SplitSessionResponse,
    summary="Finish manual assignment (MANUAL_ASSIGNING -> MANUAL_DONE)",
    description="409 incomplete_assignment lists the items that still have unassigned units."
)
async def finish_assignment(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = session.finish_assignment()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/confirm",
    response_model=SplitSessionResponse,
    summary="Confirm the manual split (MANUAL_DONE -> RESULT_SHOWN)"
)
async def confirm_split(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = session.confirm_split()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.post(
    "/{session_id}/reset",
    response_model=SplitSessionResponse,
    summary="Start over (any state -> UPLOAD)"
)
async def start_over(
    session_id: str,
    store: StoreDep,
    body: Optional[SessionCommandRequest] = None,
) -> SplitSessionResponse:
    session = _get_session(store, session_id)
    async with _session_lock(store, session_id):
        try:
            session.check_version(_expected_version(body))
            snapshot = session.start_over()
        except SplitError as e:
            raise _http_error(e)
    return SplitSessionResponse.from_snapshot(snapshot)


@router.get(
    "/{session_id}/summary",
    response_model=SplitSummaryResponse,
    summary="Get the final split text for copying",
    description="Only available in RESULT_SHOWN."
)
async def get_summary(session_id: str, store: StoreDep) -> SplitSummaryResponse:
    session = _get_session(store, session_id)
    try:
        text = session.summary_text()
    except SplitError as e:
        raise _http_error(e)

    snapshot = session.snapshot()
    assert snapshot.mode is not None
    return SplitSummaryResponse(session_id=session_id, mode=snapshot.mode, text=text)
