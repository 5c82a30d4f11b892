# flashcart/repositories/flash_listing_repo.py
import uuid
from datetime import datetime

from sqlalchemy import case, update
from sqlmodel import Session, select

from flashcart.models.flash_listing import FlashListing, ListingStatus


class FlashListingRepository:
    """
    Data access layer for flash-sale listings.

    Listings are created and edited by the seller side. `decrement_stock`
    is the only write here; it does the availability check and the
    decrement in one conditional UPDATE so two buyers can never both take
    the last units.
    """

    def get_by_id(self, session: Session, listing_id: uuid.UUID) -> FlashListing | None:
        # populate_existing: always reflect the row as it is now, not the
        # copy cached in the identity map before a Core UPDATE.
        stmt = (
            select(FlashListing)
            .where(FlashListing.id == listing_id)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def decrement_stock(
        self,
        session: Session,
        listing_id: uuid.UUID,
        quantity: int,
        sold_at: datetime,
    ) -> bool:
        """
        Take `quantity` units if at least that many remain.

        Runs inside the caller's transaction and does not commit. Returns
        False when no row matched (listing missing or not enough stock).
        """
        remaining_after = FlashListing.remaining_quantity - quantity
        stmt = (
            update(FlashListing)
            .where(
                FlashListing.id == listing_id,
                FlashListing.remaining_quantity >= quantity,
            )
            .values(
                remaining_quantity=remaining_after,
                sales_count=FlashListing.sales_count + quantity,
                last_sold_at=sold_at,
                status=case(
                    (remaining_after == 0, ListingStatus.SOLD.value),
                    else_=FlashListing.status,
                ),
            )
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1
