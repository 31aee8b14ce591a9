"""
Normalized receipt model.

Turns the raw extraction payload into an immutable Receipt and supports
cosmetic item edits (name/price). Amounts are kept as Decimal built from the
string form of the incoming number so 2-decimal currency values stay exact.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from bilbul.split.errors import InvalidReceiptData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptItem:
    """A single receipt line. `unit_price_total` is the price for all units."""
    index: int
    name: str
    unit_price_total: Decimal
    quantity: int

    @property
    def unit_price(self) -> Decimal:
        return self.unit_price_total / self.quantity


@dataclass(frozen=True)
class Receipt:
    """
    Extracted receipt.

    `declared_total` is informational only: it is never reconciled against
    the line totals nor recomputed after edits.
    """
    items: Tuple[ReceiptItem, ...]
    declared_total: Decimal

    @property
    def line_total_sum(self) -> Decimal:
        return sum((item.unit_price_total for item in self.items), Decimal("0"))

    def item(self, index: int) -> ReceiptItem:
        if index < 0 or index >= len(self.items):
            raise InvalidReceiptData(f"Receipt has no item at index {index}.", item_index=index)
        return self.items[index]

    def to_extraction_dict(self) -> Dict[str, Any]:
        """Serialize back to the extraction wire shape ({items, totalAmount})."""
        return {
            "items": [
                {
                    "name": item.name,
                    "price": float(item.unit_price_total),
                    "quantity": item.quantity,
                }
                for item in self.items
            ],
            "totalAmount": float(self.declared_total),
        }


def _to_decimal(value: Any) -> Optional[Decimal]:
    # bool is an int subclass; a True price is not a price
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _to_quantity(value: Any) -> Optional[int]:
    amount = _to_decimal(value)
    if amount is None or amount != amount.to_integral_value():
        return None
    return int(amount)


def _describe(index: int, name: Any) -> str:
    if isinstance(name, str) and name.strip():
        return f"item {index + 1} ({name.strip()})"
    return f"item {index + 1}"


def load_from_extraction(raw: Any) -> Receipt:
    """
    Validate an extraction payload and build a Receipt.

    Args:
        raw: Mapping shaped like {"items": [{"name", "price", "quantity"}], "totalAmount"}

    Returns:
        Receipt with 0-based stable item indexes.

    Raises:
        InvalidReceiptData: on the first validation failure (empty items,
            non-positive total, or an item with empty name / non-positive
            price / non-positive or fractional quantity).
    """
    if not isinstance(raw, dict):
        raise InvalidReceiptData("Receipt data must be an object.")

    raw_items = raw.get("items")
    if not isinstance(raw_items, (list, tuple)) or len(raw_items) == 0:
        raise InvalidReceiptData(
            "No items found in the receipt. Please make sure you uploaded a clear receipt image."
        )

    declared_total = _to_decimal(raw.get("totalAmount"))
    if declared_total is None or declared_total <= 0:
        raise InvalidReceiptData(
            "Invalid total amount. Please make sure you uploaded a clear receipt image."
        )

    items = []
    for index, raw_item in enumerate(raw_items):
        if not isinstance(raw_item, dict):
            raise InvalidReceiptData(f"Invalid data for item {index + 1}.", item_index=index)

        name = raw_item.get("name")
        label = _describe(index, name)
        if not isinstance(name, str) or not name.strip():
            raise InvalidReceiptData(f"Invalid name for {label}.", item_index=index)

        price = _to_decimal(raw_item.get("price"))
        if price is None or price <= 0:
            raise InvalidReceiptData(f"Invalid price for {label}.", item_index=index)

        quantity = _to_quantity(raw_item.get("quantity"))
        if quantity is None or quantity <= 0:
            raise InvalidReceiptData(f"Invalid quantity for {label}.", item_index=index)

        items.append(
            ReceiptItem(index=index, name=name.strip(), unit_price_total=price, quantity=quantity)
        )

    receipt = Receipt(items=tuple(items), declared_total=declared_total)
    if receipt.line_total_sum != declared_total:
        logger.debug(
            f"Line totals ({receipt.line_total_sum}) differ from declared total ({declared_total})"
        )
    return receipt


def edit_item(
    receipt: Receipt,
    index: int,
    name: Optional[str] = None,
    price: Optional[Any] = None,
) -> Receipt:
    """
    Return a copy of `receipt` with the item at `index` renamed and/or repriced.

    Quantity is not editable here, so ledger state referencing the item
    stays valid.
    """
    item = receipt.item(index)
    changes: Dict[str, Any] = {}

    if name is not None:
        if not name.strip():
            raise InvalidReceiptData(f"Name for {_describe(index, item.name)} cannot be empty.", item_index=index)
        changes["name"] = name.strip()

    if price is not None:
        new_price = _to_decimal(price)
        if new_price is None or new_price <= 0:
            raise InvalidReceiptData(f"Invalid price for {_describe(index, item.name)}.", item_index=index)
        changes["unit_price_total"] = new_price

    if not changes:
        return receipt

    items = list(receipt.items)
    items[index] = replace(item, **changes)
    return replace(receipt, items=tuple(items))

