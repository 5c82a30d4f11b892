# flashcart/repositories/cart_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from flashcart.models.cart import Cart, CartLine


class CartRepository:
    """
    Data access for carts and their lines.

    Nothing here commits: CartService owns the transaction so a line change
    and the totals recompute land together or not at all.
    """

    def get_by_owner(self, session: Session, owner_id: uuid.UUID) -> Cart | None:
        stmt = (
            select(Cart)
            .where(Cart.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        return session.exec(stmt).first()

    def create(self, session: Session, owner_id: uuid.UUID) -> Cart:
        """
        Insert an empty cart. Raises IntegrityError (at flush) if another
        request created the owner's cart first.
        """
        cart = Cart(owner_id=owner_id)
        session.add(cart)
        session.flush()
        return cart

    def get_version(self, session: Session, cart_id: uuid.UUID) -> int | None:
        """Committed version only; does not touch the loaded Cart object."""
        stmt = select(Cart.version).where(Cart.id == cart_id)
        return session.exec(stmt).first()

    def claim(self, session: Session, cart_id: uuid.UUID) -> bool:
        """
        Bump the cart version as the first write of the transaction.

        The row (Postgres) or database (SQLite) write lock taken here is
        held until commit/rollback, so writers on the same cart run one at
        a time.
        """
        stmt = (
            update(Cart)
            .where(Cart.id == cart_id)
            .values(version=Cart.version + 1)
        )
        result = session.connection().execute(stmt)
        return result.rowcount == 1

    # ----- lines -----

    def list_lines(self, session: Session, cart_id: uuid.UUID) -> list[CartLine]:
        stmt = (
            select(CartLine)
            .where(CartLine.cart_id == cart_id)
            .order_by(CartLine.position)
            .execution_options(populate_existing=True)
        )
        return list(session.exec(stmt).all())

    def add_line(self, session: Session, line: CartLine) -> CartLine:
        session.add(line)
        return line

    def delete_line(self, session: Session, line: CartLine) -> None:
        session.delete(line)

    def save(self, session: Session, cart: Cart) -> Cart:
        session.add(cart)
        session.flush()
        return cart
