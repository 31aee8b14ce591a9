"""
Per-participant totals and the plain-text split summary.

Amounts accumulate as unrounded Decimals; rounding to cents happens only in
format_amount(), at presentation time.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Sequence

from bilbul.split.ledger import AssignmentLedger
from bilbul.split.receipt import Receipt

CENT = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Render an amount with exactly two decimals (half-up)."""
    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def total_for(participant_id: int, receipt: Receipt, ledger: AssignmentLedger) -> Decimal:
    """
    Sum (line total / line quantity) * assigned quantity over the participant's
    assignments.
    """
    total = Decimal("0")
    for assignment in ledger.assignments_for(participant_id):
        item = receipt.item(assignment.item_index)
        total += (item.unit_price_total / item.quantity) * assignment.quantity
    return total


def totals_by_participant(
    receipt: Receipt,
    ledger: AssignmentLedger,
    participants: Sequence,
) -> Dict[int, Decimal]:
    return {p.id: total_for(p.id, receipt, ledger) for p in participants}


def render_summary(receipt: Receipt, ledger: AssignmentLedger, participants: Sequence) -> str:
    """
    Build the copy-to-clipboard summary.

    For each participant, in list order:

        <name>: $<total>
          <quantity> x <item name>

    with one indented line per assignment, in creation order. Every line,
    including the last, ends with a newline.
    """
    lines = []
    for participant in participants:
        total = total_for(participant.id, receipt, ledger)
        lines.append(f"{participant.display_name}: ${format_amount(total)}\n")
        for assignment in ledger.assignments_for(participant.id):
            item = receipt.item(assignment.item_index)
            lines.append(f"  {assignment.quantity} x {item.name}\n")
    return "".join(lines)
