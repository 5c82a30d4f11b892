# flashcart/services/product_resolver.py
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Protocol

from sqlmodel import Session

from flashcart.core.errors import NotFoundError
from flashcart.models.cart import CatalogKind
from flashcart.models.flash_listing import FlashListing
from flashcart.models.product import Product
from flashcart.repositories.flash_listing_repo import FlashListingRepository
from flashcart.repositories.product_repo import ProductRepository
from flashcart.schemas.product import ResolvedProduct

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0.00")


def _stock(value) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


class CatalogSource(Protocol):
    kind: CatalogKind

    def lookup(self, session: Session, product_id: uuid.UUID) -> ResolvedProduct | None:
        ...


class StandardCatalog:
    """Regular products/menu items."""

    kind = CatalogKind.STANDARD

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    def lookup(self, session: Session, product_id: uuid.UUID) -> ResolvedProduct | None:
        product = self.product_repo.get_by_id(session, product_id)
        if product is None:
            return None
        return self.normalize(product, self.product_repo.first_image_url(session, product.id))

    def normalize(self, product: Product, image_url: str | None = None) -> ResolvedProduct:
        return ResolvedProduct(
            id=product.id,
            kind=self.kind,
            name=product.name or "",
            price=_money(product.price),
            discount_price=(
                _money(product.discount_price) if product.discount_price is not None else None
            ),
            stock=_stock(product.stock),
            seller_id=product.seller_id,
            category=product.category or "",
            image_url=image_url or product.hero_image_url,
            is_flash_sale=False,
        )


class FlashSaleCatalog:
    """Time-limited discount listings."""

    kind = CatalogKind.FLASH_SALE

    def __init__(self, listing_repo: FlashListingRepository):
        self.listing_repo = listing_repo

    def lookup(self, session: Session, product_id: uuid.UUID) -> ResolvedProduct | None:
        listing = self.listing_repo.get_by_id(session, product_id)
        if listing is None:
            return None
        return self.normalize(listing)

    def normalize(self, listing: FlashListing) -> ResolvedProduct:
        price = listing.discounted_price
        if price is None:
            price = listing.original_price
        return ResolvedProduct(
            id=listing.id,
            kind=self.kind,
            name=listing.name or "",
            price=_money(price),
            discount_price=(
                _money(listing.discounted_price)
                if listing.discounted_price is not None
                else None
            ),
            stock=_stock(listing.remaining_quantity),
            seller_id=listing.seller_id,
            category=listing.category or "",
            image_url=listing.image_url,
            is_flash_sale=True,
        )


class ProductResolver:
    """
    Resolves a product id against the catalogs in order (standard first,
    then flash sale) and returns the first match, normalized.

    Pure read; never writes to either catalog.
    """

    def __init__(self, sources: list[CatalogSource]):
        self.sources = list(sources)

    @classmethod
    def default(cls) -> "ProductResolver":
        return cls(
            [
                StandardCatalog(ProductRepository()),
                FlashSaleCatalog(FlashListingRepository()),
            ]
        )

    def resolve(self, session: Session, product_id: uuid.UUID) -> ResolvedProduct | None:
        for source in self.sources:
            resolved = source.lookup(session, product_id)
            if resolved is not None:
                return resolved
        logger.debug("Product %s not found in any catalog", product_id)
        return None

    def require(self, session: Session, product_id: uuid.UUID) -> ResolvedProduct:
        resolved = self.resolve(session, product_id)
        if resolved is None:
            raise NotFoundError(f"Product {product_id} not found")
        return resolved
