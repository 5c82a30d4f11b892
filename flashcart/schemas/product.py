# flashcart/schemas/product.py
import uuid
from decimal import Decimal

from sqlmodel import SQLModel

from flashcart.models.cart import CatalogKind


class ResolvedProduct(SQLModel):
    """
    Catalog-independent view of a purchasable item.

    Produced by ProductResolver from either catalog; never persisted.
    """

    id: uuid.UUID
    kind: CatalogKind
    name: str = ""
    price: Decimal = Decimal("0.00")
    discount_price: Decimal | None = None
    stock: int = 0
    seller_id: uuid.UUID | None = None
    category: str = ""
    image_url: str | None = None
    is_flash_sale: bool = False
