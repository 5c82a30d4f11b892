import os
import uuid
from decimal import Decimal

import pytest

# Settings are read at import time; point them at throwaway values first.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-secret")

from sqlmodel import Session  # noqa: E402

from flashcart.database import build_engine, create_db_and_tables  # noqa: E402
from flashcart.models.cart import Cart, CartLine  # noqa: E402,F401
from flashcart.models.flash_listing import (  # noqa: E402
    FlashListing,
    ListingStatus,
    discount_percent_for,
)
from flashcart.models.product import Product, ProductImage  # noqa: E402,F401
from flashcart.models.sale_transaction import SaleTransaction  # noqa: E402,F401
from flashcart.repositories.cart_repo import CartRepository  # noqa: E402
from flashcart.repositories.flash_listing_repo import FlashListingRepository  # noqa: E402
from flashcart.repositories.sale_ledger_repo import SaleLedgerRepository  # noqa: E402
from flashcart.services.cart_service import CartService  # noqa: E402
from flashcart.services.product_resolver import ProductResolver  # noqa: E402
from flashcart.services.sale_service import SaleTransactionService  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    """File-backed SQLite so worker threads get real, separate connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'flashcart.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def persist(session):
    """Stand-in for the catalog owners' writes: save and reload one row."""

    def _persist(record):
        session.add(record)
        session.commit()
        session.refresh(record)
        return record

    return _persist


@pytest.fixture()
def discard(session):
    def _discard(record):
        session.delete(record)
        session.commit()

    return _discard


@pytest.fixture()
def cart_service():
    return CartService(CartRepository(), ProductResolver.default())


@pytest.fixture()
def sale_service():
    return SaleTransactionService(FlashListingRepository(), SaleLedgerRepository())


@pytest.fixture()
def seller_id():
    return uuid.uuid4()


@pytest.fixture()
def make_product(persist, seller_id):
    def _make(**overrides) -> Product:
        fields = {
            "name": "Paneer Tikka",
            "price": Decimal("10.00"),
            "stock": 10,
            "seller_id": seller_id,
            "category": "food",
        }
        fields.update(overrides)
        return persist(Product(**fields))

    return _make


@pytest.fixture()
def make_listing(persist, seller_id):
    def _make(**overrides) -> FlashListing:
        fields = {
            "seller_id": seller_id,
            "name": "Veg Biryani (tonight)",
            "category": "food",
            "original_price": Decimal("15.00"),
            "discounted_price": Decimal("7.50"),
            "remaining_quantity": 5,
            "unit": "pcs",
            "status": ListingStatus.ACTIVE,
        }
        fields.update(overrides)
        fields.setdefault(
            "discount_percent",
            discount_percent_for(fields["original_price"], fields["discounted_price"]),
        )
        return persist(FlashListing(**fields))

    return _make
