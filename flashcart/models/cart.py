# flashcart/models/cart.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import String, UniqueConstraint
from sqlmodel import SQLModel, Field


class CatalogKind(str, Enum):
    STANDARD = "standard"
    FLASH_SALE = "flash_sale"


class Cart(SQLModel, table=True):
    """
    One cart per owner.

    Totals are derived from the lines (see services.cart_aggregate) and
    rewritten in the same transaction as every line change. `version` is
    bumped first thing in every write transaction, which serializes
    concurrent writers on the same cart.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: uuid.UUID = Field(unique=True, index=True)

    total_item_count: int = Field(default=0, ge=0)
    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
    )

    version: int = Field(default=1)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartLine(SQLModel, table=True):
    """
    Cart entry for one product.
    One cart cannot have 2 rows for the same product.

    name/image/category/seller/discount/stock are display snapshots taken
    when the line was last touched, not a live join.
    """

    __tablename__ = "cart_lines"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_line_product"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    position: int = Field(default=0, description="Insertion order within the cart")

    product_id: uuid.UUID = Field(index=True)
    product_kind: CatalogKind = Field(
        default=CatalogKind.STANDARD,
        sa_type=String(20),
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    unit_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Price when added/updated",
    )

    name: str = ""
    image_url: str | None = None
    category: str = ""
    seller_id: uuid.UUID | None = None
    discount_price: Decimal | None = Field(
        default=None,
        max_digits=12,
        decimal_places=2,
    )
    available_stock: int = 0

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
