# flashcart/services/unit_of_work.py
from contextlib import contextmanager
from decimal import Decimal

from sqlmodel import Session

from flashcart.core.errors import InvalidQuantityError


@contextmanager
def unit_of_work(session: Session):
    """
    Commit everything done inside the block, or nothing.

    Any exception (business or storage) rolls the transaction back before
    it propagates, so callers never observe half-applied state.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def parse_quantity(value) -> int:
    """
    Accept whole numbers (int, integral float/Decimal, numeric string) >= 1.

    Raises InvalidQuantityError for anything else, including bools.
    """
    if value is None or isinstance(value, bool):
        raise InvalidQuantityError(value)

    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidQuantityError(value)
        quantity = int(value)
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise InvalidQuantityError(value)
        quantity = int(value)
    elif isinstance(value, str):
        try:
            quantity = int(value.strip())
        except ValueError:
            raise InvalidQuantityError(value)
    else:
        raise InvalidQuantityError(value)

    if quantity < 1:
        raise InvalidQuantityError(value)
    return quantity
