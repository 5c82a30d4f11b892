# flashcart/services/cart_aggregate.py
"""
Cart totals derivation.

`recompute_totals` is the single source of truth for a cart's totals: it is
pure, idempotent and called after every structural change to the lines,
before the cart is persisted. Totals are never edited any other way.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, NamedTuple

from flashcart.models.cart import Cart

CENT = Decimal("0.01")


class CartTotals(NamedTuple):
    total_item_count: int
    total_amount: Decimal


def round2(value: Decimal) -> Decimal:
    """Round half up to 2 decimal places (0.005 -> 0.01)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _safe_quantity(value) -> int:
    if isinstance(value, bool):
        return 0
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return 0
    return max(quantity, 0)


def _safe_price(value) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return price if price.is_finite() else Decimal("0")


def recompute_totals(lines: Iterable) -> CartTotals:
    """
    total_item_count = sum of quantities
    total_amount     = round2(sum of quantity * unit_price)

    Rounding happens once, after summation, so per-line fractions of a cent
    do not accumulate drift.
    """
    count = 0
    amount = Decimal("0")
    for line in lines:
        quantity = _safe_quantity(getattr(line, "quantity", 0))
        count += quantity
        amount += quantity * _safe_price(getattr(line, "unit_price", None))
    return CartTotals(total_item_count=count, total_amount=round2(amount))


def apply_totals(cart: Cart, lines: Iterable) -> CartTotals:
    totals = recompute_totals(lines)
    cart.total_item_count = totals.total_item_count
    cart.total_amount = totals.total_amount
    cart.updated_at = datetime.now(timezone.utc)
    return totals
