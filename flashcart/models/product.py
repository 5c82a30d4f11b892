# flashcart/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Standard catalog entry.

    Owned by the product/menu management side of the marketplace; this
    core only reads it (through ProductResolver).
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str | None = Field(
        default=None,
        max_length=100,
        index=True,
        description="Display name of the dish/product",
    )

    price: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Unit price",
    )

    discount_price: Decimal | None = Field(
        default=None,
        max_digits=12,
        decimal_places=2,
        description="Optional promotional price shown next to the unit price",
    )

    stock: int | None = Field(
        default=0,
        description="How many units currently in stock",
    )

    seller_id: uuid.UUID | None = Field(
        default=None,
        index=True,
    )

    category: str | None = Field(default=None, max_length=50)

    hero_image_url: str | None = Field(
        default=None,
        description="Fallback image when the product has no gallery rows",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductImage(SQLModel, table=True):
    """
    Gallery images for a product; the lowest sort_order is the display image.
    """

    __tablename__ = "product_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    image_url: str = Field(
        description="Public URL of the stored image",
    )

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )
