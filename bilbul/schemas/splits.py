"""
Pydantic schemas for split session endpoints.

Every mutating endpoint answers with the full SplitSessionResponse so the
frontend can render from a single snapshot. Mutating requests accept an
optional `expected_version`; when present and stale the request fails with
409 version_conflict instead of acting on outdated data.
"""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from bilbul.split.calculator import format_amount
from bilbul.split.session import SessionSnapshot, SessionState, SplitMode


# --- Snapshot models ---

class ReceiptItemResponse(BaseModel):
    """A single receipt line with its unassigned units."""
    index: int = Field(..., description="0-based item index, stable for the session")
    name: str = Field(..., description="Item name", examples=["Coffee"])
    price: float = Field(..., description="Total price for all units of the line", examples=[10.00])
    quantity: int = Field(..., description="Units on the line", examples=[2])
    remaining: int = Field(..., description="Units not yet assigned to anyone")


class ReceiptResponse(BaseModel):
    items: List[ReceiptItemResponse]
    total_amount: float = Field(
        ...,
        description="Total printed on the receipt (informational, never recomputed)",
        examples=[10.00]
    )
    line_total_sum: float = Field(..., description="Sum of the line prices")


class AssignmentResponse(BaseModel):
    item_index: int
    participant_id: int
    quantity: int


class ParticipantResponse(BaseModel):
    """
    A person sharing the bill.

    `total` is rounded to cents for display; `total_display` is the exact
    string used in the summary text.
    """
    id: int = Field(..., description="1-based participant id")
    display_name: str = Field(..., examples=["Person 1"])
    total: float = Field(..., examples=[5.00])
    total_display: str = Field(..., examples=["5.00"])


class SplitSessionResponse(BaseModel):
    """Snapshot of a split session."""
    session_id: str
    state: SessionState
    version: int = Field(..., description="Incremented by every successful command")
    mode: Optional[SplitMode] = Field(None, description="SIMPLE or MANUAL once chosen")
    receipt: Optional[ReceiptResponse] = None
    participants: List[ParticipantResponse] = Field(default_factory=list)
    assignments: List[AssignmentResponse] = Field(
        default_factory=list,
        description="Assignments in creation order"
    )
    is_complete: bool = Field(False, description="Every unit of every item is assigned")
    result_text: Optional[str] = Field(
        None,
        description="Final split text (RESULT_SHOWN only)"
    )

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SplitSessionResponse":
        receipt = None
        if snapshot.receipt is not None:
            receipt = ReceiptResponse(
                items=[
                    ReceiptItemResponse(
                        index=item.index,
                        name=item.name,
                        price=float(item.unit_price_total),
                        quantity=item.quantity,
                        remaining=snapshot.remaining.get(item.index, item.quantity),
                    )
                    for item in snapshot.receipt.items
                ],
                total_amount=float(snapshot.receipt.declared_total),
                line_total_sum=float(snapshot.receipt.line_total_sum),
            )

        participants = []
        for participant in snapshot.participants:
            total_display = format_amount(snapshot.totals.get(participant.id, Decimal("0")))
            participants.append(
                ParticipantResponse(
                    id=participant.id,
                    display_name=participant.display_name,
                    total=float(total_display),
                    total_display=total_display,
                )
            )

        return cls(
            session_id=snapshot.session_id,
            state=snapshot.state,
            version=snapshot.version,
            mode=snapshot.mode,
            receipt=receipt,
            participants=participants,
            assignments=[
                AssignmentResponse(
                    item_index=a.item_index,
                    participant_id=a.participant_id,
                    quantity=a.quantity,
                )
                for a in snapshot.assignments
            ],
            is_complete=snapshot.is_complete,
            result_text=snapshot.result_text,
        )


# --- Request models ---

class SessionCommandRequest(BaseModel):
    """Optional body for state transition commands."""
    expected_version: Optional[int] = Field(None, ge=0)

    model_config = {"extra": "forbid"}


class ItemEditRequest(BaseModel):
    """Rename and/or reprice a receipt line. Quantity is not editable."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, gt=0, description="New total price for the line")
    expected_version: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def require_change(self):
        if self.name is None and self.price is None:
            raise ValueError("Provide a new name and/or price")
        return self

    model_config = {
        "str_strip_whitespace": True,
        "extra": "forbid"
    }


class ParticipantRenameRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=50, examples=["Alice"])
    expected_version: Optional[int] = Field(None, ge=0)

    model_config = {
        "str_strip_whitespace": True,
        "extra": "forbid"
    }


class AssignmentRequest(BaseModel):
    """
    Set how many units of an item a participant takes.

    Replaces any earlier quantity for the same (item, participant) pair.
    """
    item_index: int = Field(..., ge=0)
    participant_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)
    expected_version: Optional[int] = Field(None, ge=0)

    model_config = {"extra": "forbid"}


# --- Other responses ---

class SplitSummaryResponse(BaseModel):
    """Copy-to-clipboard result text."""
    session_id: str
    mode: SplitMode
    text: str


class SplitDeleteResponse(BaseModel):
    status: Literal["DELETED"] = "DELETED"
    session_id: str
    message: str = Field(..., examples=["Split session deleted successfully"])
