# flashcart/schemas/sales.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel

from flashcart.models.sale_transaction import TransactionStatus


class SaleTransactionRead(SQLModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    seller_id: uuid.UUID
    product_name: str
    quantity: int
    sale_price: Decimal
    original_price: Decimal
    discount_percent: int
    category: str
    sold_at: datetime
    status: TransactionStatus


class CategoryRevenue(SQLModel):
    category: str
    sales: int
    revenue: Decimal


class TopListing(SQLModel):
    listing_id: uuid.UUID
    product_name: str
    total_sold: int
    revenue: Decimal


class RevenueSummary(SQLModel):
    """
    Seller revenue computed from ledger snapshots only.
    """

    total_sales: int
    total_revenue: Decimal
    average_discount: float
    category_revenue: list[CategoryRevenue]
    top_listings: list[TopListing]
