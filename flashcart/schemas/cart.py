# flashcart/schemas/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel

from flashcart.models.cart import CatalogKind


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    quantity is validated by CartService (InvalidQuantity), not here, so the
    same rule applies to HTTP and library callers.
    """

    product_id: uuid.UUID
    quantity: bool | int | float | str | None = 1


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart line (checked by CartService).
    """

    quantity: bool | int | float | str | None = None


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    product_id: uuid.UUID
    product_kind: CatalogKind
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    name: str
    image_url: str | None = None
    category: str
    seller_id: uuid.UUID | None = None
    discount_price: Decimal | None = None
    available_stock: int
    added_at: datetime


class CartRead(SQLModel):
    """
    Full cart response model with totals.
    """

    owner_id: uuid.UUID
    lines: list[CartLineRead]
    total_item_count: int
    total_amount: Decimal
    version: int
