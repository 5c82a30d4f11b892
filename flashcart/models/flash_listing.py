# flashcart/models/flash_listing.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from sqlalchemy import String
from sqlmodel import SQLModel, Field


class ListingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"


def discount_percent_for(original_price: Decimal, discounted_price: Decimal | None) -> int:
    """
    Whole-number discount percentage, rounded half up.

    Returns 0 when there is no discounted price or the original price is 0.
    """
    if discounted_price is None or not original_price:
        return 0
    ratio = (Decimal(original_price) - Decimal(discounted_price)) / Decimal(original_price)
    percent = int((ratio * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return min(max(percent, 0), 100)


class FlashListing(SQLModel, table=True):
    """
    Perishable, quantity-bounded, discount-priced item (a.k.a. urgent sale).

    Created and edited by the seller (outside this core). The stock fields
    (remaining_quantity, sales_count, last_sold_at) and the transition to
    `sold` are written only by SaleTransactionService.
    """

    __tablename__ = "flash_listings"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    seller_id: uuid.UUID = Field(index=True)

    name: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=50)
    description: str | None = None

    original_price: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
    )

    discounted_price: Decimal | None = Field(
        default=None,
        max_digits=12,
        decimal_places=2,
        description="Sale price; falls back to original_price when unset",
    )

    discount_percent: int = Field(default=0, ge=0, le=100)

    remaining_quantity: int = Field(default=0, ge=0)

    # kg | g | l | ml | pcs | dozen | box | pack | other
    unit: str = Field(default="pcs", max_length=20)

    expires_at: datetime | None = Field(default=None, index=True)

    status: ListingStatus = Field(
        default=ListingStatus.ACTIVE,
        sa_type=String(20),
        index=True,
    )

    sales_count: int = Field(default=0, ge=0)
    last_sold_at: datetime | None = None

    image_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
