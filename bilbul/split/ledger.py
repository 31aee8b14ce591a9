"""
Assignment ledger for the manual (advanced) split.

Tracks how many units of each receipt line are allocated to which
participant. Allocation is keyed by (item_index, participant_id): assigning
the same pair again replaces the quantity instead of adding to it.

Invariant: 0 <= remaining(i) <= quantity(i) for every item, at all times.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from bilbul.split.errors import InvalidAssignment, QuantityExceedsRemaining

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    item_index: int
    participant_id: int
    quantity: int


class AssignmentLedger:
    """
    Item-to-participant unit allocations.

    Args:
        quantities: Unit count per item index (immutable for the ledger's life)
        item_names: Display names per item index, used in error messages
    """

    def __init__(self, quantities: Sequence[int], item_names: Sequence[str]):
        if len(quantities) != len(item_names):
            raise ValueError("quantities and item_names must have the same length")
        self._quantities: Tuple[int, ...] = tuple(quantities)
        self._item_names: List[str] = list(item_names)
        # dict keeps insertion order; replacing a key keeps its original position
        self._assigned: Dict[Tuple[int, int], int] = {}

    @classmethod
    def for_receipt(cls, receipt) -> "AssignmentLedger":
        return cls(
            quantities=[item.quantity for item in receipt.items],
            item_names=[item.name for item in receipt.items],
        )

    def __len__(self) -> int:
        return len(self._quantities)

    def _check_item(self, item_index: int) -> None:
        if item_index < 0 or item_index >= len(self._quantities):
            raise InvalidAssignment(f"Receipt has no item at index {item_index}.")

    def rename_item(self, item_index: int, name: str) -> None:
        """Keep error messages in sync after a cosmetic item edit."""
        self._check_item(item_index)
        self._item_names[item_index] = name

    def remaining(self, item_index: int) -> int:
        """Unallocated units for an item: quantity minus everything assigned to it."""
        self._check_item(item_index)
        allocated = sum(
            quantity for (index, _), quantity in self._assigned.items() if index == item_index
        )
        return self._quantities[item_index] - allocated

    def assigned_quantity(self, item_index: int, participant_id: int) -> int:
        return self._assigned.get((item_index, participant_id), 0)

    def assign(self, item_index: int, participant_id: int, quantity: int) -> "AssignmentLedger":
        """
        Set the number of units of `item_index` allocated to `participant_id`.

        The participant's prior quantity for this item does not count against
        the available amount, since it is being replaced.

        Raises:
            InvalidAssignment: unknown item or non-positive/non-integer quantity
            QuantityExceedsRemaining: quantity is larger than what is available;
                the ledger is left unchanged
        """
        self._check_item(item_index)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidAssignment("Quantity must be a positive whole number.")

        key = (item_index, participant_id)
        available = self.remaining(item_index) + self._assigned.get(key, 0)
        if quantity > available:
            logger.warning(
                f"Rejected assignment: item_index={item_index}, participant_id={participant_id}, "
                f"requested={quantity}, available={available}"
            )
            raise QuantityExceedsRemaining(
                item_name=self._item_names[item_index],
                requested=quantity,
                available=available,
            )

        self._assigned[key] = quantity
        return self

    def is_complete(self) -> bool:
        """True iff every item has zero remaining units."""
        return all(self.remaining(index) == 0 for index in range(len(self._quantities)))

    def unassigned_items(self) -> List[int]:
        return [index for index in range(len(self._quantities)) if self.remaining(index) > 0]

    def item_name(self, item_index: int) -> str:
        self._check_item(item_index)
        return self._item_names[item_index]

    def assignments(self) -> List[Assignment]:
        """All assignments in creation order."""
        return [
            Assignment(item_index=index, participant_id=participant_id, quantity=quantity)
            for (index, participant_id), quantity in self._assigned.items()
        ]

    def assignments_for(self, participant_id: int) -> List[Assignment]:
        return [a for a in self.assignments() if a.participant_id == participant_id]

    def remaining_by_item(self) -> Dict[int, int]:
        return {index: self.remaining(index) for index in range(len(self._quantities))}

    def reset(self) -> None:
        self._assigned.clear()
