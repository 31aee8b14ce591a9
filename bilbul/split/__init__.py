"""
Receipt splitting core.

Pure, in-process logic for turning an extracted receipt into a per-person
split. No HTTP, Supabase or Gemini imports live here: external collaborators
are injected into SplitSession as async callables.

Main Components:
- receipt: Receipt model, extraction validation, item edits
- ledger: AssignmentLedger (unit allocation with conservation invariant)
- calculator: per-participant totals and the plain-text summary
- session: SplitSession state machine driving the above
- errors: SplitError taxonomy shared with the HTTP layer

Usage:
    from bilbul.split import SplitSession, Identity

    session = SplitSession("s-1", extractor=extract, suggester=suggest, usage=tracker)
    await session.submit_receipt(photo_url, 2, Identity(client_id="device-1"))
    session.confirm_items()
    session.begin_manual()
    session.assign(0, 1, 1)
"""

from bilbul.split.errors import (
    AuthenticationRequired,
    ExternalServiceFailure,
    IncompleteAssignment,
    InvalidAssignment,
    InvalidReceiptData,
    InvalidSessionState,
    QuantityExceedsRemaining,
    SplitError,
    VersionConflict,
)
from bilbul.split.ledger import Assignment, AssignmentLedger
from bilbul.split.receipt import Receipt, ReceiptItem, edit_item, load_from_extraction
from bilbul.split.session import (
    Identity,
    Participant,
    SessionSnapshot,
    SessionState,
    SplitMode,
    SplitSession,
)

__all__ = [
    # Errors
    "SplitError",
    "InvalidReceiptData",
    "QuantityExceedsRemaining",
    "IncompleteAssignment",
    "InvalidAssignment",
    "InvalidSessionState",
    "AuthenticationRequired",
    "ExternalServiceFailure",
    "VersionConflict",
    # Model
    "Receipt",
    "ReceiptItem",
    "load_from_extraction",
    "edit_item",
    "Assignment",
    "AssignmentLedger",
    # Session
    "Identity",
    "Participant",
    "SessionSnapshot",
    "SessionState",
    "SplitMode",
    "SplitSession",
]
