"""
Tests for per-participant totals and the summary text.
"""

from decimal import Decimal

import pytest

from bilbul.split.calculator import format_amount, render_summary, total_for, totals_by_participant
from bilbul.split.ledger import AssignmentLedger
from bilbul.split.receipt import load_from_extraction
from bilbul.split.session import Participant


@pytest.fixture
def people():
    return [Participant(1, "Ana"), Participant(2, "Ben"), Participant(3, "Cleo")]


class TestFormatAmount:

    @pytest.mark.parametrize("amount, expected", [
        (Decimal("5"), "5.00"),
        (Decimal("3.333333"), "3.33"),
        (Decimal("2.005"), "2.01"),
        (Decimal("0"), "0.00"),
    ])
    def test_two_decimals_half_up(self, amount, expected):
        assert format_amount(amount) == expected


class TestTotals:

    def test_unit_price_times_assigned_quantity(self, dinner_receipt, people):
        receipt = load_from_extraction(dinner_receipt)
        ledger = AssignmentLedger.for_receipt(receipt)
        ledger.assign(1, 1, 2).assign(1, 2, 1).assign(0, 2, 1)

        assert total_for(1, receipt, ledger) == Decimal("12")
        assert total_for(2, receipt, ledger) == Decimal("30")

    def test_participant_without_assignments_owes_zero(self, dinner_receipt, people):
        receipt = load_from_extraction(dinner_receipt)
        ledger = AssignmentLedger.for_receipt(receipt)

        totals = totals_by_participant(receipt, ledger, people)

        assert totals == {1: Decimal("0"), 2: Decimal("0"), 3: Decimal("0")}

    def test_complete_split_sums_to_line_totals(self, dinner_receipt, people):
        receipt = load_from_extraction(dinner_receipt)
        ledger = AssignmentLedger.for_receipt(receipt)
        ledger.assign(0, 1, 1).assign(1, 1, 1).assign(1, 2, 1).assign(1, 3, 1).assign(2, 3, 1)

        totals = totals_by_participant(receipt, ledger, people)

        assert sum(totals.values()) == receipt.line_total_sum

    def test_thirds_round_only_at_presentation(self, people):
        receipt = load_from_extraction({
            "items": [{"name": "Cake", "price": 10, "quantity": 3}],
            "totalAmount": 10,
        })
        ledger = AssignmentLedger.for_receipt(receipt)
        ledger.assign(0, 1, 1).assign(0, 2, 1).assign(0, 3, 1)

        totals = totals_by_participant(receipt, ledger, people)

        assert [format_amount(t) for t in totals.values()] == ["3.33", "3.33", "3.33"]
        assert format_amount(sum(totals.values())) == "10.00"


class TestRenderSummary:

    def test_coffee_split_between_two(self, coffee_receipt):
        receipt = load_from_extraction(coffee_receipt)
        ledger = AssignmentLedger.for_receipt(receipt)
        ledger.assign(0, 1, 1).assign(0, 2, 1)
        participants = [Participant(1, "Person 1"), Participant(2, "Person 2")]

        summary = render_summary(receipt, ledger, participants)

        assert summary == (
            "Person 1: $5.00\n"
            "  1 x Coffee\n"
            "Person 2: $5.00\n"
            "  1 x Coffee\n"
        )

    def test_participant_order_and_empty_participant(self, dinner_receipt, people):
        receipt = load_from_extraction(dinner_receipt)
        ledger = AssignmentLedger.for_receipt(receipt)
        ledger.assign(2, 2, 1).assign(0, 2, 1).assign(1, 1, 3)

        summary = render_summary(receipt, ledger, people)

        assert summary == (
            "Ana: $18.00\n"
            "  3 x Beer\n"
            "Ben: $33.50\n"
            "  1 x Salad\n"
            "  1 x Pizza\n"
            "Cleo: $0.00\n"
        )
