# flashcart/routers/sales.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from flashcart.core.auth import Principal, require_seller
from flashcart.core.config import get_settings
from flashcart.database import get_session
from flashcart.repositories.flash_listing_repo import FlashListingRepository
from flashcart.repositories.sale_ledger_repo import SaleLedgerRepository
from flashcart.schemas.sales import RevenueSummary, SaleTransactionRead
from flashcart.services.sale_service import SaleTransactionService

settings = get_settings()

router = APIRouter(prefix="/sales", tags=["Sales"])

service = SaleTransactionService(FlashListingRepository(), SaleLedgerRepository())


@router.get("/recent", response_model=list[SaleTransactionRead])
def recent_sales(
    limit: int = Query(default=settings.RECENT_TRANSACTIONS_LIMIT, ge=1, le=100),
    session: Session = Depends(get_session),
    seller: Principal = Depends(require_seller),
):
    """
    Latest ledger entries for the calling seller, newest first.
    """
    return service.recent_transactions(session, seller.id, limit=limit)


@router.get("/revenue", response_model=RevenueSummary)
def revenue(
    start: datetime | None = None,
    end: datetime | None = None,
    session: Session = Depends(get_session),
    seller: Principal = Depends(require_seller),
):
    """
    Revenue of completed sales for the calling seller, from ledger prices.
    """
    return service.revenue_summary(session, seller.id, start=start, end=end)
