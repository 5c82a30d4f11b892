# flashcart/services/cart_service.py
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from flashcart.core.errors import (
    ConcurrentModificationError,
    InsufficientStockError,
    NotFoundError,
)
from flashcart.models.cart import Cart, CartLine
from flashcart.repositories.cart_repo import CartRepository
from flashcart.schemas.cart import CartLineRead, CartRead
from flashcart.schemas.product import ResolvedProduct
from flashcart.services.cart_aggregate import apply_totals, round2
from flashcart.services.product_resolver import ProductResolver
from flashcart.services.unit_of_work import parse_quantity, unit_of_work

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - resolve products across both catalogs (ProductResolver)
      - enforce quantity >= 1 and, for standard items, quantity <= stock
      - snapshot price and display fields onto each line
      - keep totals equal to the sum of the lines (cart_aggregate)

    Every write runs in one transaction that starts by claiming the cart
    row, so concurrent requests on the same cart apply one after another
    and a failure leaves the stored cart untouched. The returned CartRead
    is built inside that transaction, before commit.
    """

    READ_ATTEMPTS = 3

    def __init__(self, cart_repo: CartRepository, resolver: ProductResolver):
        self.cart_repo = cart_repo
        self.resolver = resolver

    # ---- internal helpers ----

    def _lock_cart(
        self,
        session: Session,
        owner_id: uuid.UUID,
        create: bool = True,
    ) -> Cart:
        """
        Return the owner's cart with its write lock held by this transaction.

        Creates the cart when missing (unless create=False, then NotFound).
        """
        cart = self.cart_repo.get_by_owner(session, owner_id)

        if cart is None:
            if not create:
                raise NotFoundError(f"Cart for owner {owner_id} not found")
            try:
                # The fresh insert is itself locked until commit.
                return self.cart_repo.create(session, owner_id)
            except IntegrityError:
                # Another request created it between our read and insert.
                session.rollback()
                cart = self.cart_repo.get_by_owner(session, owner_id)
                if cart is None:
                    raise ConcurrentModificationError(
                        f"Cart for owner {owner_id} changed concurrently, retry"
                    )

        if not self.cart_repo.claim(session, cart.id):
            raise ConcurrentModificationError(
                f"Cart for owner {owner_id} changed concurrently, retry"
            )
        # Re-read under the lock: totals/version may have moved since the
        # unlocked read above.
        return self.cart_repo.get_by_owner(session, owner_id)

    @staticmethod
    def _find_line(lines: list[CartLine], product_id: uuid.UUID) -> CartLine | None:
        for line in lines:
            if line.product_id == product_id:
                return line
        return None

    @staticmethod
    def _refresh_snapshot(line: CartLine, product: ResolvedProduct) -> None:
        line.product_kind = product.kind
        line.unit_price = product.price
        line.name = product.name
        line.image_url = product.image_url
        line.category = product.category
        line.seller_id = product.seller_id
        line.discount_price = product.discount_price
        line.available_stock = product.stock

    def _commit_lines(self, session: Session, cart: Cart, lines: list[CartLine]) -> None:
        apply_totals(cart, lines)
        self.cart_repo.save(session, cart)

    @staticmethod
    def _to_read(cart: Cart, lines: list[CartLine]) -> CartRead:
        return CartRead(
            owner_id=cart.owner_id,
            lines=[
                CartLineRead(
                    product_id=line.product_id,
                    product_kind=line.product_kind,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=round2(line.quantity * line.unit_price),
                    name=line.name,
                    image_url=line.image_url,
                    category=line.category,
                    seller_id=line.seller_id,
                    discount_price=line.discount_price,
                    available_stock=line.available_stock,
                    added_at=line.added_at,
                )
                for line in lines
            ],
            total_item_count=cart.total_item_count,
            total_amount=cart.total_amount,
            version=cart.version,
        )

    def _read_snapshot(
        self,
        session: Session,
        owner_id: uuid.UUID,
    ) -> tuple[Cart, list[CartLine]] | None:
        """
        Read the cart and its lines without taking the write lock.

        Every write bumps `version` before touching lines, so an unchanged
        version after reading the lines means both reads saw the same
        commit. Retries a few times, then gives up with
        ConcurrentModification.
        """
        for _ in range(self.READ_ATTEMPTS):
            cart = self.cart_repo.get_by_owner(session, owner_id)
            if cart is None:
                return None
            version = cart.version
            lines = self.cart_repo.list_lines(session, cart.id)
            if self.cart_repo.get_version(session, cart.id) == version:
                return cart, lines

        raise ConcurrentModificationError(
            f"Cart for owner {owner_id} kept changing while being read, retry"
        )

    # ---- public operations ----

    def get_or_create_cart(self, session: Session, owner_id: uuid.UUID) -> CartRead:
        """
        Return the owner's cart, creating an empty one on first access.
        """
        snapshot = self._read_snapshot(session, owner_id)
        if snapshot is not None:
            return self._to_read(*snapshot)

        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id)
            view = self._to_read(cart, self.cart_repo.list_lines(session, cart.id))

        logger.info("Created cart for owner %s", owner_id)
        return view

    def add_item(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity,
    ) -> CartRead:
        """
        Add a product to the owner's cart.

        Rules:
          - quantity must be a whole number >= 1
          - product must resolve in one of the catalogs
          - standard items: quantity <= stock; flash-sale items are only
            checked at sale time since their stock moves too fast
          - an existing line is increased and its snapshot refreshed
        """
        quantity = parse_quantity(quantity)

        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id)

            product = self.resolver.require(session, product_id)
            if not product.is_flash_sale and quantity > product.stock:
                raise InsufficientStockError(quantity, product.stock, product.name)

            lines = self.cart_repo.list_lines(session, cart.id)
            line = self._find_line(lines, product.id)
            if line is not None:
                line.quantity += quantity
            else:
                line = CartLine(
                    cart_id=cart.id,
                    position=max((existing.position for existing in lines), default=-1) + 1,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                )
                lines.append(line)
                self.cart_repo.add_line(session, line)

            self._refresh_snapshot(line, product)
            self._commit_lines(session, cart, lines)
            view = self._to_read(cart, lines)

        logger.info(
            "Added %s x %s (%s) to cart of %s",
            quantity, product.id, product.kind.value, owner_id,
        )
        return view

    def update_item_quantity(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity,
    ) -> CartRead:
        """
        Set the quantity of an existing line (use remove_item for 0).

        Stock is re-checked against the current catalog record.
        """
        quantity = parse_quantity(quantity)

        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id, create=False)
            lines = self.cart_repo.list_lines(session, cart.id)

            line = self._find_line(lines, product_id)
            if line is None:
                raise NotFoundError(f"Product {product_id} is not in the cart")

            product = self.resolver.require(session, product_id)
            if quantity > product.stock:
                raise InsufficientStockError(quantity, product.stock, product.name)

            line.quantity = quantity
            self._refresh_snapshot(line, product)
            self._commit_lines(session, cart, lines)
            view = self._to_read(cart, lines)

        logger.info("Set %s to %s in cart of %s", product_id, quantity, owner_id)
        return view

    def remove_item(
        self,
        session: Session,
        owner_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartRead:
        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id, create=False)
            lines = self.cart_repo.list_lines(session, cart.id)

            line = self._find_line(lines, product_id)
            if line is None:
                raise NotFoundError(f"Product {product_id} is not in the cart")

            self.cart_repo.delete_line(session, line)
            lines.remove(line)
            self._commit_lines(session, cart, lines)
            view = self._to_read(cart, lines)

        logger.info("Removed %s from cart of %s", product_id, owner_id)
        return view

    def clear(self, session: Session, owner_id: uuid.UUID) -> CartRead:
        """
        Remove every line; the cart itself is kept with zero totals.
        """
        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id)
            for line in self.cart_repo.list_lines(session, cart.id):
                self.cart_repo.delete_line(session, line)
            self._commit_lines(session, cart, [])
            view = self._to_read(cart, [])

        logger.info("Cleared cart of %s", owner_id)
        return view

    def read_cart(self, session: Session, owner_id: uuid.UUID) -> CartRead:
        """
        Return the owner's cart as stored (snapshots, not live prices).

        Side effect: lines whose product no longer resolves in either
        catalog are deleted and the totals recomputed and committed, so a
        stale reference is dropped once and for all. A cart without stale
        lines is returned without any write.
        """
        snapshot = self._read_snapshot(session, owner_id)
        if snapshot is None:
            return self.get_or_create_cart(session, owner_id)

        cart, lines = snapshot
        view = self._to_read(cart, lines)
        stale_ids = {
            line.product_id
            for line in view.lines
            if self.resolver.resolve(session, line.product_id) is None
        }
        if not stale_ids:
            return view

        with unit_of_work(session):
            cart = self._lock_cart(session, owner_id)
            kept: list[CartLine] = []
            pruned = 0
            for line in self.cart_repo.list_lines(session, cart.id):
                if (
                    line.product_id in stale_ids
                    and self.resolver.resolve(session, line.product_id) is None
                ):
                    self.cart_repo.delete_line(session, line)
                    pruned += 1
                else:
                    kept.append(line)
            self._commit_lines(session, cart, kept)
            view = self._to_read(cart, kept)

        logger.warning(
            "Pruned %s stale line(s) from cart of %s", pruned, owner_id
        )
        return view
