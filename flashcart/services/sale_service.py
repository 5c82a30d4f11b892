# flashcart/services/sale_service.py
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import Session

from flashcart.core.errors import (
    ConcurrentModificationError,
    InsufficientStockError,
    NotFoundError,
)
from flashcart.models.sale_transaction import SaleTransaction, TransactionStatus
from flashcart.repositories.flash_listing_repo import FlashListingRepository
from flashcart.repositories.sale_ledger_repo import SaleLedgerRepository
from flashcart.schemas.sales import CategoryRevenue, RevenueSummary, TopListing
from flashcart.services.cart_aggregate import round2
from flashcart.services.unit_of_work import parse_quantity, unit_of_work

logger = logging.getLogger(__name__)


def _amount(value) -> Decimal:
    return round2(Decimal(str(value or 0)))


class SaleTransactionService:
    """
    Records flash-sale purchases against the ledger.

    Responsibilities:
      - take stock from a listing without ever overselling
      - freeze the listing's price terms into an immutable ledger entry
      - flip the listing to `sold` when its last unit goes
      - report revenue from the ledger snapshots only
    """

    def __init__(
        self,
        listing_repo: FlashListingRepository,
        ledger_repo: SaleLedgerRepository,
    ):
        self.listing_repo = listing_repo
        self.ledger_repo = ledger_repo

    def _reject(self, session: Session, listing_id: uuid.UUID, quantity: int) -> None:
        """
        Explain why the conditional decrement matched no row.
        """
        listing = self.listing_repo.get_by_id(session, listing_id)
        if listing is None:
            raise NotFoundError(f"Flash listing {listing_id} not found")
        if listing.remaining_quantity < quantity:
            logger.warning(
                "Rejected sale of %s x %s: only %s left",
                quantity, listing_id, listing.remaining_quantity,
            )
            raise InsufficientStockError(
                quantity, listing.remaining_quantity, listing.name or ""
            )
        raise ConcurrentModificationError(
            f"Flash listing {listing_id} changed during the sale, retry"
        )

    def record_sale(
        self,
        session: Session,
        listing_id: uuid.UUID,
        quantity=1,
    ) -> SaleTransaction:
        """
        Sell `quantity` units of a flash listing.

        Steps (one transaction):
          1. Conditionally decrement remaining_quantity (only if enough
             remain), bump sales_count, stamp last_sold_at, and set status
             to `sold` when it reaches 0.
          2. If nothing matched: NotFound / InsufficientStock.
          3. Re-read the listing (still locked by step 1) and copy its
             current price, discount and category into a `completed`
             ledger entry.
          4. Commit both, or roll both back.

        Not retried internally: a lost race surfaces to the caller.
        """
        quantity = parse_quantity(quantity)
        sold_at = datetime.now(timezone.utc)

        with unit_of_work(session):
            if not self.listing_repo.decrement_stock(session, listing_id, quantity, sold_at):
                self._reject(session, listing_id, quantity)

            listing = self.listing_repo.get_by_id(session, listing_id)
            sale_price = listing.discounted_price
            if sale_price is None:
                sale_price = listing.original_price

            entry = SaleTransaction(
                listing_id=listing.id,
                seller_id=listing.seller_id,
                product_name=listing.name or "",
                quantity=quantity,
                sale_price=sale_price,
                original_price=listing.original_price,
                discount_percent=listing.discount_percent,
                category=listing.category or "",
                sold_at=sold_at,
                status=TransactionStatus.COMPLETED,
            )
            self.ledger_repo.append(session, entry)
            remaining = listing.remaining_quantity

        session.refresh(entry)
        logger.info(
            "Sold %s x %s at %s (remaining %s)",
            quantity, listing_id, sale_price, remaining,
        )
        return entry

    # ---- ledger reads ----

    def recent_transactions(
        self,
        session: Session,
        seller_id: uuid.UUID,
        limit: int = 10,
    ) -> list[SaleTransaction]:
        return self.ledger_repo.list_recent(session, seller_id, limit=limit)

    def revenue_summary(
        self,
        session: Session,
        seller_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> RevenueSummary:
        """
        Revenue over completed sales, optionally within [start, end].

        Uses only the prices frozen on ledger entries, so later edits to a
        listing never change historical revenue.
        """
        total_sales, total_revenue, avg_discount = self.ledger_repo.totals(
            session, seller_id, start, end
        )

        category_revenue = [
            CategoryRevenue(category=category, sales=int(sales or 0), revenue=_amount(revenue))
            for category, sales, revenue in self.ledger_repo.revenue_by_category(
                session, seller_id, start, end
            )
        ]

        top_listings = [
            TopListing(
                listing_id=listing_id,
                product_name=product_name or "",
                total_sold=int(total_sold or 0),
                revenue=_amount(revenue),
            )
            for listing_id, product_name, total_sold, revenue in self.ledger_repo.top_listings(
                session, seller_id, start, end
            )
        ]

        return RevenueSummary(
            total_sales=int(total_sales or 0),
            total_revenue=_amount(total_revenue),
            average_discount=float(avg_discount or 0),
            category_revenue=category_revenue,
            top_listings=top_listings,
        )
