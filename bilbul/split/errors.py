"""
Error taxonomy for the split workflow.

Every error derives from SplitError (itself a ValueError) so the HTTP layer can
map them to status codes in one place. Each error carries a stable `code`
that is returned to the client as the `error` field.
"""

from typing import Any, Dict, List, Optional


class SplitError(ValueError):
    """Base class for all split workflow errors."""

    code = "split_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, Any]:
        """Build the `detail` payload used in HTTP error responses."""
        return {"error": self.code, "details": self.message}


class InvalidReceiptData(SplitError):
    """Extraction output (or an item edit) failed shape/positivity validation."""

    code = "invalid_receipt_data"

    def __init__(self, message: str, item_index: Optional[int] = None):
        super().__init__(message)
        self.item_index = item_index

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.item_index is not None:
            detail["item_index"] = self.item_index
        return detail


class QuantityExceedsRemaining(SplitError):
    """A manual assignment would over-allocate a line item."""

    code = "quantity_exceeds_remaining"

    def __init__(self, item_name: str, requested: int, available: int):
        super().__init__(
            f"Quantity exceeds remaining for item {item_name}: "
            f"requested {requested}, available {available}."
        )
        self.item_name = item_name
        self.requested = requested
        self.available = available

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update(
            item_name=self.item_name,
            requested=self.requested,
            available=self.available,
        )
        return detail


class IncompleteAssignment(SplitError):
    """Finalize attempted while some items still have unassigned units."""

    code = "incomplete_assignment"

    def __init__(self, unassigned_items: List[str]):
        super().__init__(
            "Please assign all items before confirming. "
            f"Unassigned: {', '.join(unassigned_items)}."
        )
        self.unassigned_items = unassigned_items

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["unassigned_items"] = self.unassigned_items
        return detail


class InvalidAssignment(SplitError):
    """Assignment references an unknown item/participant or a non-positive quantity."""

    code = "invalid_assignment"


class InvalidSessionState(SplitError):
    """A command was issued in a state that does not accept it."""

    code = "invalid_session_state"

    def __init__(self, command: str, state: str):
        super().__init__(f"Cannot {command} while session is in state {state}.")
        self.command = command
        self.state = state


class AuthenticationRequired(SplitError):
    """Anonymous client already used its free split."""

    code = "sign_in_required"

    def __init__(self) -> None:
        super().__init__("Please sign in to continue using Bilbul.")


class ExternalServiceFailure(SplitError):
    """The extraction or suggestion service failed or timed out."""

    code = "external_service_failure"

    def __init__(self, service: str, message: str, timed_out: bool = False):
        super().__init__(message)
        self.service = service
        self.timed_out = timed_out

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update(service=self.service, retryable=True, timed_out=self.timed_out)
        return detail


class VersionConflict(SplitError):
    """The client acted on a stale snapshot of the session."""

    code = "version_conflict"

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Session changed since it was last read (expected version {expected}, current {actual})."
        )
        self.expected = expected
        self.actual = actual

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["current_version"] = self.actual
        return detail
