"""
Split session controller.

Owns the whole state of one bill-splitting session and moves it through:

    UPLOAD -> REVIEWING -> CHOOSING_STRATEGY -> RESULT_SHOWN            (simple)
    UPLOAD -> REVIEWING -> CHOOSING_STRATEGY -> MANUAL_ASSIGNING
           -> MANUAL_DONE -> RESULT_SHOWN                                (manual)

start_over() returns any state to UPLOAD.

Commands go in as method calls; state comes out as immutable snapshots.
Every command either succeeds and bumps `version`, or raises a SplitError
leaving the session exactly as it was.

The session does not lock itself. Callers that share a session between
concurrent requests must serialize commands (see services.session_store).
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from bilbul.split import calculator
from bilbul.split.errors import (
    AuthenticationRequired,
    ExternalServiceFailure,
    IncompleteAssignment,
    InvalidAssignment,
    InvalidReceiptData,
    InvalidSessionState,
    SplitError,
    VersionConflict,
)
from bilbul.split.ledger import Assignment, AssignmentLedger
from bilbul.split.receipt import Receipt, edit_item, load_from_extraction

logger = logging.getLogger(__name__)

Extractor = Callable[[str], Awaitable[Dict[str, Any]]]
Suggester = Callable[[str, int], Awaitable[str]]


class SessionState(str, Enum):
    UPLOAD = "UPLOAD"
    REVIEWING = "REVIEWING"
    CHOOSING_STRATEGY = "CHOOSING_STRATEGY"
    MANUAL_ASSIGNING = "MANUAL_ASSIGNING"
    MANUAL_DONE = "MANUAL_DONE"
    RESULT_SHOWN = "RESULT_SHOWN"


class SplitMode(str, Enum):
    SIMPLE = "SIMPLE"
    MANUAL = "MANUAL"


# States in which the receipt and participants may still be edited
_EDITABLE_STATES = (
    SessionState.REVIEWING,
    SessionState.CHOOSING_STRATEGY,
    SessionState.MANUAL_ASSIGNING,
    SessionState.MANUAL_DONE,
)


@dataclass(frozen=True)
class Participant:
    id: int
    display_name: str


@dataclass(frozen=True)
class Identity:
    """
    Who is driving the session.

    client_id identifies the device/browser for anonymous usage metering;
    user_id is set only when the request carried a verified token.
    """
    client_id: str
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    state: SessionState
    version: int
    mode: Optional[SplitMode]
    receipt: Optional[Receipt]
    participants: Tuple[Participant, ...]
    remaining: Dict[int, int] = field(default_factory=dict)
    assignments: Tuple[Assignment, ...] = ()
    totals: Dict[int, Decimal] = field(default_factory=dict)
    result_text: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.remaining) and all(r == 0 for r in self.remaining.values())


class SplitSession:
    """
    State machine for one receipt split.

    Args:
        session_id: Opaque id used in logs and snapshots
        extractor: async callable photo_url -> raw extraction payload
        suggester: async callable (receipt_json, number_of_people) -> text
        usage: tracker exposing has_completed_split(client_id) and
            record_completed_split(client_id)
        timeout_seconds: upper bound for each external call
        max_participants: largest accepted person count
    """

    def __init__(
        self,
        session_id: str,
        extractor: Extractor,
        suggester: Suggester,
        usage: Any,
        timeout_seconds: float = 30.0,
        max_participants: int = 5,
    ):
        self.session_id = session_id
        self._extractor = extractor
        self._suggester = suggester
        self._usage = usage
        self._timeout_seconds = timeout_seconds
        self._max_participants = max_participants

        self._version = 0
        self._clear()

    def _clear(self) -> None:
        self._state = SessionState.UPLOAD
        self._mode: Optional[SplitMode] = None
        self._receipt: Optional[Receipt] = None
        self._ledger: Optional[AssignmentLedger] = None
        self._participants: List[Participant] = []
        self._identity: Optional[Identity] = None
        self._result_text: Optional[str] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def version(self) -> int:
        return self._version

    def _require(self, command: str, *states: SessionState) -> None:
        if self._state not in states:
            logger.warning(
                f"Session {self.session_id}: rejected {command} in state {self._state.value}"
            )
            raise InvalidSessionState(command, self._state.value)

    def _transition(self, new_state: SessionState) -> None:
        logger.info(
            f"Session {self.session_id}: {self._state.value} -> {new_state.value}"
        )
        self._state = new_state

    def _commit(self) -> "SessionSnapshot":
        self._version += 1
        return self.snapshot()

    def check_version(self, expected_version: Optional[int]) -> None:
        """Compare-and-swap guard for clients acting on a snapshot they read earlier."""
        if expected_version is not None and expected_version != self._version:
            raise VersionConflict(expected_version, self._version)

    async def _call_external(self, service: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Session {self.session_id}: {service} timed out after {self._timeout_seconds}s")
            raise ExternalServiceFailure(
                service,
                f"The {service} service did not respond in time. Please try again.",
                timed_out=True,
            )
        except SplitError:
            raise
        except Exception as e:
            logger.error(f"Session {self.session_id}: {service} failed: {e}", exc_info=True)
            raise ExternalServiceFailure(
                service, f"The {service} service failed. Please try again."
            ) from e

    def _participant(self, participant_id: int) -> Participant:
        for participant in self._participants:
            if participant.id == participant_id:
                return participant
        raise InvalidAssignment(f"Unknown participant {participant_id}.")

    def _show_result(self, mode: SplitMode, text: str) -> None:
        self._mode = mode
        self._result_text = text
        self._transition(SessionState.RESULT_SHOWN)
        identity = self._identity
        if identity is not None and not identity.is_authenticated:
            self._usage.record_completed_split(identity.client_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def submit_receipt(
        self,
        photo_url: str,
        number_of_people: int,
        identity: Identity,
    ) -> SessionSnapshot:
        """
        UPLOAD -> REVIEWING.

        Anonymous clients that already completed a split must sign in first.
        On any failure the session stays in UPLOAD with nothing committed.
        """
        self._require("submit a receipt", SessionState.UPLOAD)

        if not identity.is_authenticated and self._usage.has_completed_split(identity.client_id):
            logger.info(f"Session {self.session_id}: anonymous client must sign in")
            raise AuthenticationRequired()

        if not photo_url:
            raise InvalidReceiptData("Please upload a receipt image.")

        if number_of_people < 1 or number_of_people > self._max_participants:
            raise InvalidAssignment(
                f"Number of people must be between 1 and {self._max_participants}."
            )

        raw = await self._call_external("extraction", self._extractor(photo_url))
        receipt = load_from_extraction(raw)

        self._receipt = receipt
        self._ledger = AssignmentLedger.for_receipt(receipt)
        self._participants = [
            Participant(id=i + 1, display_name=f"Person {i + 1}")
            for i in range(number_of_people)
        ]
        self._identity = identity
        self._mode = None
        self._result_text = None
        logger.info(
            f"Session {self.session_id}: receipt loaded with {len(receipt.items)} items "
            f"for {number_of_people} people"
        )
        self._transition(SessionState.REVIEWING)
        return self._commit()

    def edit_item(
        self,
        index: int,
        name: Optional[str] = None,
        price: Optional[Any] = None,
    ) -> SessionSnapshot:
        """Rename/reprice a line. Existing assignments are kept."""
        self._require("edit an item", *_EDITABLE_STATES)
        assert self._receipt is not None and self._ledger is not None

        receipt = edit_item(self._receipt, index, name=name, price=price)
        self._receipt = receipt
        self._ledger.rename_item(index, receipt.items[index].name)
        return self._commit()

    def rename_participant(self, participant_id: int, display_name: str) -> SessionSnapshot:
        self._require("rename a participant", *_EDITABLE_STATES)
        if not display_name or not display_name.strip():
            raise InvalidAssignment("Participant name cannot be empty.")

        participant = self._participant(participant_id)
        position = self._participants.index(participant)
        self._participants[position] = replace(participant, display_name=display_name.strip())
        return self._commit()

    def confirm_items(self) -> SessionSnapshot:
        """REVIEWING -> CHOOSING_STRATEGY."""
        self._require("confirm items", SessionState.REVIEWING)
        self._transition(SessionState.CHOOSING_STRATEGY)
        return self._commit()

    async def request_suggestion(self) -> SessionSnapshot:
        """CHOOSING_STRATEGY -> RESULT_SHOWN using the external suggestion service."""
        self._require("request a suggested split", SessionState.CHOOSING_STRATEGY)
        assert self._receipt is not None

        receipt_json = json.dumps(self._receipt.to_extraction_dict())
        text = await self._call_external(
            "suggestion", self._suggester(receipt_json, len(self._participants))
        )
        if not text or not str(text).strip():
            raise ExternalServiceFailure("suggestion", "Could not suggest split. Please try again.")

        self._show_result(SplitMode.SIMPLE, str(text))
        return self._commit()

    def begin_manual(self) -> SessionSnapshot:
        """CHOOSING_STRATEGY -> MANUAL_ASSIGNING."""
        self._require("start a manual split", SessionState.CHOOSING_STRATEGY)
        self._mode = SplitMode.MANUAL
        self._transition(SessionState.MANUAL_ASSIGNING)
        return self._commit()

    def assign(self, item_index: int, participant_id: int, quantity: int) -> SessionSnapshot:
        self._require("assign items", SessionState.MANUAL_ASSIGNING)
        assert self._ledger is not None

        self._participant(participant_id)
        self._ledger.assign(item_index, participant_id, quantity)
        logger.debug(
            f"Session {self.session_id}: item {item_index} -> participant {participant_id} x{quantity}"
        )
        return self._commit()

    def finish_assignment(self) -> SessionSnapshot:
        """MANUAL_ASSIGNING -> MANUAL_DONE, only once every unit is assigned."""
        self._require("finish assignment", SessionState.MANUAL_ASSIGNING)
        assert self._ledger is not None

        if not self._ledger.is_complete():
            unassigned = [self._ledger.item_name(i) for i in self._ledger.unassigned_items()]
            logger.warning(
                f"Session {self.session_id}: finish rejected, {len(unassigned)} items unassigned"
            )
            raise IncompleteAssignment(unassigned)

        self._transition(SessionState.MANUAL_DONE)
        return self._commit()

    def confirm_split(self) -> SessionSnapshot:
        """MANUAL_DONE -> RESULT_SHOWN with the locally computed summary."""
        self._require("confirm the split", SessionState.MANUAL_DONE)
        assert self._receipt is not None and self._ledger is not None

        summary = calculator.render_summary(self._receipt, self._ledger, self._participants)
        self._show_result(SplitMode.MANUAL, summary)
        return self._commit()

    def start_over(self) -> SessionSnapshot:
        """Any state -> UPLOAD, dropping receipt, ledger, participants and result."""
        logger.info(f"Session {self.session_id}: start over from {self._state.value}")
        self._clear()
        return self._commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def summary_text(self) -> str:
        self._require("read the result", SessionState.RESULT_SHOWN)
        assert self._result_text is not None
        return self._result_text

    def snapshot(self) -> SessionSnapshot:
        receipt = self._receipt
        ledger = self._ledger
        participants = tuple(self._participants)

        if receipt is None or ledger is None:
            return SessionSnapshot(
                session_id=self.session_id,
                state=self._state,
                version=self._version,
                mode=self._mode,
                receipt=None,
                participants=participants,
                result_text=self._result_text,
            )

        return SessionSnapshot(
            session_id=self.session_id,
            state=self._state,
            version=self._version,
            mode=self._mode,
            receipt=receipt,
            participants=participants,
            remaining=ledger.remaining_by_item(),
            assignments=tuple(ledger.assignments()),
            totals=calculator.totals_by_participant(receipt, ledger, participants),
            result_text=self._result_text,
        )
