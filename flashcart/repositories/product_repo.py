# flashcart/repositories/product_repo.py
import uuid

from sqlmodel import Session, select

from flashcart.models.product import Product, ProductImage


class ProductRepository:
    """
    Read access to the standard catalog (Product & ProductImage).

    Products are created and edited by the menu management side of the
    marketplace; this core never writes them.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id, populate_existing=True)

    def first_image_url(self, session: Session, product_id: uuid.UUID) -> str | None:
        stmt = (
            select(ProductImage.image_url)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order)
            .limit(1)
        )
        return session.exec(stmt).first()
