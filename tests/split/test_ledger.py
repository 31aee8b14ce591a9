"""
Tests for AssignmentLedger.

Covers unit conservation, replace semantics for repeated assignments and
the rejection paths that must leave the ledger unchanged.
"""

import pytest

from bilbul.split.errors import InvalidAssignment, QuantityExceedsRemaining
from bilbul.split.ledger import Assignment, AssignmentLedger


@pytest.fixture
def ledger():
    # Coffee x2, Beer x3
    return AssignmentLedger(quantities=[2, 3], item_names=["Coffee", "Beer"])


class TestAssign:

    def test_fresh_ledger_has_everything_remaining(self, ledger):
        assert ledger.remaining_by_item() == {0: 2, 1: 3}
        assert ledger.assignments() == []
        assert not ledger.is_complete()

    def test_assign_reduces_remaining(self, ledger):
        ledger.assign(0, 1, 1)

        assert ledger.remaining(0) == 1
        assert ledger.assigned_quantity(0, 1) == 1

    def test_reassigning_same_pair_replaces_quantity(self, ledger):
        ledger.assign(1, 1, 1)
        ledger.assign(1, 1, 3)

        assert ledger.remaining(1) == 0
        assert ledger.assignments() == [Assignment(1, 1, 3)]

    def test_prior_quantity_counts_as_available_when_replacing(self, ledger):
        ledger.assign(1, 1, 2)
        ledger.assign(1, 2, 1)

        # participant 1 can go back down to 1 or up to its own 2
        ledger.assign(1, 1, 2)

        assert ledger.remaining(1) == 0

    def test_over_assign_rejected_and_ledger_unchanged(self, ledger):
        ledger.assign(0, 1, 1)

        with pytest.raises(QuantityExceedsRemaining) as exc_info:
            ledger.assign(0, 2, 2)

        error = exc_info.value
        assert error.item_name == "Coffee"
        assert error.requested == 2
        assert error.available == 1
        assert "Quantity exceeds remaining for item Coffee" in str(error)
        assert ledger.remaining(0) == 1
        assert ledger.assignments() == [Assignment(0, 1, 1)]

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_invalid_quantity_rejected(self, ledger, quantity):
        with pytest.raises(InvalidAssignment):
            ledger.assign(0, 1, quantity)

        assert ledger.remaining(0) == 2

    @pytest.mark.parametrize("item_index", [-1, 2, 99])
    def test_unknown_item_rejected(self, ledger, item_index):
        with pytest.raises(InvalidAssignment):
            ledger.assign(item_index, 1, 1)

    def test_assign_returns_ledger(self, ledger):
        assert ledger.assign(0, 1, 1) is ledger


class TestCompleteness:

    def test_complete_when_every_unit_assigned(self, ledger):
        ledger.assign(0, 1, 1).assign(0, 2, 1).assign(1, 2, 3)

        assert ledger.is_complete()
        assert ledger.unassigned_items() == []

    def test_unassigned_items_lists_partial_lines(self, ledger):
        ledger.assign(0, 1, 2).assign(1, 1, 1)

        assert ledger.unassigned_items() == [1]
        assert ledger.item_name(1) == "Beer"

    def test_reset_clears_assignments(self, ledger):
        ledger.assign(0, 1, 2)

        ledger.reset()

        assert ledger.remaining_by_item() == {0: 2, 1: 3}


class TestOrdering:

    def test_assignments_in_creation_order(self, ledger):
        ledger.assign(1, 2, 1)
        ledger.assign(0, 1, 1)
        ledger.assign(0, 2, 1)

        assert ledger.assignments() == [
            Assignment(1, 2, 1),
            Assignment(0, 1, 1),
            Assignment(0, 2, 1),
        ]
        assert ledger.assignments_for(2) == [Assignment(1, 2, 1), Assignment(0, 2, 1)]

    def test_replacement_keeps_original_position(self, ledger):
        ledger.assign(0, 1, 1)
        ledger.assign(1, 1, 1)
        ledger.assign(0, 1, 2)

        assert [a.item_index for a in ledger.assignments()] == [0, 1]

    def test_rename_item_updates_error_messages(self, ledger):
        ledger.rename_item(0, "Flat White")

        with pytest.raises(QuantityExceedsRemaining) as exc_info:
            ledger.assign(0, 1, 5)

        assert exc_info.value.item_name == "Flat White"


def test_mismatched_lengths_rejected():
    with pytest.raises(ValueError):
        AssignmentLedger(quantities=[1, 2], item_names=["Coffee"])
