# flashcart/repositories/sale_ledger_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from flashcart.models.sale_transaction import SaleTransaction, TransactionStatus


class SaleLedgerRepository:
    """
    Append-only store of sale transactions plus read-only aggregates.

    There is intentionally no update/delete here; refunds and cancellations
    are a separate flow that only changes `status`.
    """

    def append(self, session: Session, entry: SaleTransaction) -> SaleTransaction:
        # Flush only: the caller commits together with the listing decrement.
        session.add(entry)
        session.flush()
        return entry

    def get_by_id(self, session: Session, entry_id: uuid.UUID) -> SaleTransaction | None:
        return session.get(SaleTransaction, entry_id)

    def list_for_listing(
        self,
        session: Session,
        listing_id: uuid.UUID,
    ) -> list[SaleTransaction]:
        stmt = (
            select(SaleTransaction)
            .where(SaleTransaction.listing_id == listing_id)
            .order_by(SaleTransaction.sold_at)
        )
        return list(session.exec(stmt).all())

    def list_recent(
        self,
        session: Session,
        seller_id: uuid.UUID,
        limit: int = 10,
    ) -> list[SaleTransaction]:
        stmt = (
            select(SaleTransaction)
            .where(SaleTransaction.seller_id == seller_id)
            .order_by(SaleTransaction.sold_at.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    # ----- aggregates (completed sales only) -----

    def _completed_filters(
        self,
        seller_id: uuid.UUID,
        start: datetime | None,
        end: datetime | None,
    ) -> list:
        filters = [
            SaleTransaction.seller_id == seller_id,
            SaleTransaction.status == TransactionStatus.COMPLETED.value,
        ]
        if start is not None:
            filters.append(SaleTransaction.sold_at >= start)
        if end is not None:
            filters.append(SaleTransaction.sold_at <= end)
        return filters

    def totals(
        self,
        session: Session,
        seller_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple:
        """
        (units sold, revenue, average discount percent)
        """
        stmt = select(
            func.coalesce(func.sum(SaleTransaction.quantity), 0),
            func.coalesce(
                func.sum(SaleTransaction.sale_price * SaleTransaction.quantity),
                0,
            ),
            func.coalesce(func.avg(SaleTransaction.discount_percent), 0),
        ).where(*self._completed_filters(seller_id, start, end))
        return session.exec(stmt).one()

    def revenue_by_category(
        self,
        session: Session,
        seller_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[tuple]:
        stmt = (
            select(
                SaleTransaction.category,
                func.sum(SaleTransaction.quantity).label("sales"),
                func.sum(SaleTransaction.sale_price * SaleTransaction.quantity).label("revenue"),
            )
            .where(*self._completed_filters(seller_id, start, end))
            .group_by(SaleTransaction.category)
            .order_by(SaleTransaction.category)
        )
        return list(session.exec(stmt).all())

    def top_listings(
        self,
        session: Session,
        seller_id: uuid.UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Top listings by units sold. The name is taken from the ledger rows,
        so renamed or deleted listings still report under their sold name.
        """
        qty_sum = func.sum(SaleTransaction.quantity)
        stmt = (
            select(
                SaleTransaction.listing_id,
                func.max(SaleTransaction.product_name).label("product_name"),
                qty_sum.label("total_sold"),
                func.sum(SaleTransaction.sale_price * SaleTransaction.quantity).label("revenue"),
            )
            .where(*self._completed_filters(seller_id, start, end))
            .group_by(SaleTransaction.listing_id)
            .order_by(qty_sum.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())
