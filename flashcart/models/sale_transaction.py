# flashcart/models/sale_transaction.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import Index, String
from sqlmodel import SQLModel, Field


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class SaleTransaction(SQLModel, table=True):
    """
    Ledger entry for one completed flash sale.

    Economic terms are copied from the listing at the moment of sale and
    never updated afterwards; revenue reporting reads only these columns.
    `listing_id` is a plain reference (no FK) so entries outlive the listing.
    """

    __tablename__ = "sale_transactions"
    __table_args__ = (
        Index("ix_sale_transactions_seller_sold_at", "seller_id", "sold_at"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    listing_id: uuid.UUID = Field(index=True)
    seller_id: uuid.UUID

    product_name: str = Field(default="")
    quantity: int = Field(default=1, ge=1)

    sale_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Price actually charged per unit",
    )
    original_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Listing's original price when sold",
    )
    discount_percent: int = Field(default=0, ge=0, le=100)
    category: str = Field(default="", index=True)

    sold_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.COMPLETED,
        sa_type=String(20),
        index=True,
    )
