import random
import uuid
from decimal import Decimal

import pytest
from sqlmodel import Session

from flashcart.core.errors import (
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
)
from flashcart.models.cart import CatalogKind
from flashcart.repositories.cart_repo import CartRepository
from flashcart.services.cart_aggregate import recompute_totals
from flashcart.services.cart_service import CartService
from flashcart.services.product_resolver import ProductResolver


@pytest.fixture()
def owner_id():
    return uuid.uuid4()


def assert_totals_match_lines(session, owner_id):
    repo = CartRepository()
    cart = repo.get_by_owner(session, owner_id)
    lines = repo.list_lines(session, cart.id)
    totals = recompute_totals(lines)
    assert cart.total_item_count == totals.total_item_count
    assert cart.total_amount == totals.total_amount


class TestAddItem:
    def test_add_to_empty_cart(self, session, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("10.00"), stock=10)

        cart = cart_service.add_item(session, owner_id, product.id, 2)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2
        assert cart.lines[0].product_kind == CatalogKind.STANDARD
        assert cart.total_item_count == 2
        assert cart.total_amount == Decimal("20.00")
        assert_totals_match_lines(session, owner_id)

    def test_add_same_product_merges_line(self, session, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("10.00"), stock=10)
        cart_service.add_item(session, owner_id, product.id, 2)

        cart = cart_service.add_item(session, owner_id, product.id, 3)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 5
        assert cart.total_item_count == 5
        assert cart.total_amount == Decimal("50.00")

    def test_numeric_string_quantity_accepted(self, session, cart_service, make_product, owner_id):
        product = make_product()

        cart = cart_service.add_item(session, owner_id, product.id, "3")

        assert cart.lines[0].quantity == 3

    @pytest.mark.parametrize("quantity", [0, -1, None, "abc", 1.5, True])
    def test_invalid_quantity_rejected(self, session, cart_service, make_product, owner_id, quantity):
        product = make_product()

        with pytest.raises(InvalidQuantityError):
            cart_service.add_item(session, owner_id, product.id, quantity)

        assert CartRepository().get_by_owner(session, owner_id) is None

    def test_unknown_product(self, session, cart_service, owner_id):
        with pytest.raises(NotFoundError):
            cart_service.add_item(session, owner_id, uuid.uuid4(), 1)

    def test_standard_item_over_stock(self, session, cart_service, make_product, owner_id):
        product = make_product(stock=3)
        cart_service.add_item(session, owner_id, product.id, 1)

        with pytest.raises(InsufficientStockError) as excinfo:
            cart_service.add_item(session, owner_id, product.id, 4)

        assert excinfo.value.requested == 4
        assert excinfo.value.available == 3
        cart = cart_service.read_cart(session, owner_id)
        assert cart.lines[0].quantity == 1
        assert cart.total_item_count == 1

    def test_flash_item_skips_stock_check(self, session, cart_service, make_listing, owner_id):
        listing = make_listing(
            original_price=Decimal("15.00"),
            discounted_price=Decimal("7.50"),
            remaining_quantity=2,
        )

        cart = cart_service.add_item(session, owner_id, listing.id, 5)

        line = cart.lines[0]
        assert line.product_kind == CatalogKind.FLASH_SALE
        assert line.quantity == 5
        assert line.unit_price == Decimal("7.50")
        assert line.available_stock == 2
        assert cart.total_amount == Decimal("37.50")

    def test_readding_refreshes_snapshot(self, session, persist, cart_service, make_product, owner_id):
        product = make_product(name="Old name", price=Decimal("10.00"), stock=10)
        cart_service.add_item(session, owner_id, product.id, 1)

        product.name = "New name"
        product.price = Decimal("12.00")
        persist(product)
        cart = cart_service.add_item(session, owner_id, product.id, 1)

        line = cart.lines[0]
        assert line.name == "New name"
        assert line.unit_price == Decimal("12.00")
        assert cart.total_amount == Decimal("24.00")

    def test_new_lines_append_in_order(self, session, cart_service, make_product, owner_id):
        first = make_product(name="first")
        second = make_product(name="second")
        third = make_product(name="third")
        for product in (first, second, third):
            cart_service.add_item(session, owner_id, product.id, 1)

        cart_service.remove_item(session, owner_id, second.id)
        cart = cart_service.add_item(session, owner_id, second.id, 1)

        assert [line.name for line in cart.lines] == ["first", "third", "second"]

    def test_each_write_bumps_version(self, session, cart_service, make_product, owner_id):
        product = make_product()
        before = cart_service.add_item(session, owner_id, product.id, 1).version

        after = cart_service.add_item(session, owner_id, product.id, 1).version

        assert after == before + 1


class TestUpdateItemQuantity:
    def test_update_sets_quantity(self, session, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("4.40"), stock=10)
        cart_service.add_item(session, owner_id, product.id, 1)

        cart = cart_service.update_item_quantity(session, owner_id, product.id, 7)

        assert cart.lines[0].quantity == 7
        assert cart.total_item_count == 7
        assert cart.total_amount == Decimal("30.80")
        assert_totals_match_lines(session, owner_id)

    def test_zero_is_invalid(self, session, cart_service, make_product, owner_id):
        product = make_product()
        cart_service.add_item(session, owner_id, product.id, 5)

        with pytest.raises(InvalidQuantityError):
            cart_service.update_item_quantity(session, owner_id, product.id, 0)

        assert cart_service.read_cart(session, owner_id).lines[0].quantity == 5

    def test_over_stock_leaves_cart_untouched(self, session, cart_service, make_product, owner_id):
        product = make_product(stock=5)
        before = cart_service.add_item(session, owner_id, product.id, 2)

        with pytest.raises(InsufficientStockError):
            cart_service.update_item_quantity(session, owner_id, product.id, 6)

        after = cart_service.read_cart(session, owner_id)
        assert after.lines[0].quantity == 2
        assert after.total_amount == before.total_amount
        assert after.version == before.version

    def test_flash_item_checked_against_remaining(self, session, cart_service, make_listing, owner_id):
        listing = make_listing(remaining_quantity=3)
        cart_service.add_item(session, owner_id, listing.id, 1)

        with pytest.raises(InsufficientStockError):
            cart_service.update_item_quantity(session, owner_id, listing.id, 4)

        cart = cart_service.update_item_quantity(session, owner_id, listing.id, 3)
        assert cart.lines[0].quantity == 3

    def test_missing_cart(self, session, cart_service, make_product, owner_id):
        product = make_product()

        with pytest.raises(NotFoundError):
            cart_service.update_item_quantity(session, owner_id, product.id, 1)

    def test_missing_line(self, session, cart_service, make_product, owner_id):
        in_cart = make_product()
        not_in_cart = make_product()
        cart_service.add_item(session, owner_id, in_cart.id, 1)

        with pytest.raises(NotFoundError):
            cart_service.update_item_quantity(session, owner_id, not_in_cart.id, 1)


class TestRemoveAndClear:
    def test_remove_last_line(self, session, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("10.00"))
        cart_service.add_item(session, owner_id, product.id, 5)

        cart = cart_service.remove_item(session, owner_id, product.id)

        assert cart.lines == []
        assert cart.total_item_count == 0
        assert cart.total_amount == Decimal("0.00")

    def test_remove_absent_product(self, session, cart_service, make_product, owner_id):
        product = make_product()
        cart_service.add_item(session, owner_id, product.id, 1)

        with pytest.raises(NotFoundError):
            cart_service.remove_item(session, owner_id, uuid.uuid4())

    def test_remove_without_cart(self, session, cart_service, owner_id):
        with pytest.raises(NotFoundError):
            cart_service.remove_item(session, owner_id, uuid.uuid4())

    def test_clear_keeps_cart(self, session, cart_service, make_product, make_listing, owner_id):
        cart_service.add_item(session, owner_id, make_product().id, 2)
        cart_service.add_item(session, owner_id, make_listing().id, 1)

        cart = cart_service.clear(session, owner_id)

        assert cart.lines == []
        assert cart.total_item_count == 0
        assert cart.total_amount == Decimal("0.00")
        assert CartRepository().get_by_owner(session, owner_id) is not None


class TestReadCart:
    def test_first_read_creates_empty_cart(self, session, cart_service, owner_id):
        cart = cart_service.read_cart(session, owner_id)

        assert cart.owner_id == owner_id
        assert cart.lines == []
        assert cart.total_amount == Decimal("0.00")

    def test_get_or_create_is_stable(self, session, cart_service, owner_id):
        first = cart_service.get_or_create_cart(session, owner_id)
        second = cart_service.get_or_create_cart(session, owner_id)

        assert first.version == second.version

    def test_returns_snapshot_not_live_price(self, session, persist, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("10.00"))
        cart_service.add_item(session, owner_id, product.id, 2)

        product.price = Decimal("99.00")
        persist(product)
        cart = cart_service.read_cart(session, owner_id)

        assert cart.lines[0].unit_price == Decimal("10.00")
        assert cart.total_amount == Decimal("20.00")

    def test_prunes_deleted_product(self, session, discard, cart_service, make_product, owner_id):
        kept = make_product(price=Decimal("10.00"))
        gone = make_product(price=Decimal("3.00"))
        cart_service.add_item(session, owner_id, kept.id, 2)
        cart_service.add_item(session, owner_id, gone.id, 1)

        discard(gone)
        cart = cart_service.read_cart(session, owner_id)

        assert [line.product_id for line in cart.lines] == [kept.id]
        assert cart.total_item_count == 2
        assert cart.total_amount == Decimal("20.00")
        assert_totals_match_lines(session, owner_id)

    def test_prunes_deleted_flash_listing(self, session, discard, cart_service, make_listing, owner_id):
        listing = make_listing()
        cart_service.add_item(session, owner_id, listing.id, 1)

        discard(listing)
        cart = cart_service.read_cart(session, owner_id)

        assert cart.lines == []
        assert cart.total_amount == Decimal("0.00")

    def test_prune_is_persisted_once(self, session, discard, cart_service, make_product, owner_id):
        gone = make_product()
        cart_service.add_item(session, owner_id, gone.id, 1)
        discard(gone)

        pruned = cart_service.read_cart(session, owner_id)
        again = cart_service.read_cart(session, owner_id)

        assert again.version == pruned.version
        assert again.lines == []

    def test_clean_read_does_not_write(self, session, cart_service, make_product, owner_id):
        product = make_product()
        added = cart_service.add_item(session, owner_id, product.id, 1)

        read = cart_service.read_cart(session, owner_id)

        assert read.version == added.version


def test_totals_hold_across_operation_sequence(session, cart_service, make_product, make_listing, owner_id):
    products = [
        make_product(price=Decimal("0.99"), stock=50),
        make_product(price=Decimal("12.35"), stock=50),
        make_product(price=Decimal("3.33"), stock=50),
        make_listing(discounted_price=Decimal("4.45"), remaining_quantity=50),
    ]
    cart_service.get_or_create_cart(session, owner_id)
    rng = random.Random(7)

    for _ in range(40):
        product = rng.choice(products)
        action = rng.choice(["add", "update", "remove"])
        try:
            if action == "add":
                cart_service.add_item(session, owner_id, product.id, rng.randint(1, 3))
            elif action == "update":
                cart_service.update_item_quantity(session, owner_id, product.id, rng.randint(1, 9))
            else:
                cart_service.remove_item(session, owner_id, product.id)
        except NotFoundError:
            pass
        assert_totals_match_lines(session, owner_id)


class _RefusingCartRepository(CartRepository):
    """Every claim loses its race."""

    def claim(self, session, cart_id):
        return False


class _CallLog:
    def __init__(self):
        self.calls = []


class _LoggingCartRepository(CartRepository):
    def __init__(self, log):
        self.log = log

    def create(self, session, owner_id):
        self.log.calls.append("lock")
        return super().create(session, owner_id)

    def claim(self, session, cart_id):
        self.log.calls.append("lock")
        return super().claim(session, cart_id)


class _LoggingResolver(ProductResolver):
    def __init__(self, log):
        super().__init__(ProductResolver.default().sources)
        self.log = log

    def require(self, session, product_id):
        self.log.calls.append("resolve")
        return super().require(session, product_id)


class _CommittedVersionCartService(CartService):
    """Notes the committed cart version at the moment each view is built."""

    def __init__(self, engine):
        super().__init__(CartRepository(), ProductResolver.default())
        self.engine = engine
        self.committed_versions = []

    def _to_read(self, cart, lines):
        with Session(self.engine) as other:
            self.committed_versions.append(CartRepository().get_version(other, cart.id))
        return super()._to_read(cart, lines)


class TestCartLocking:
    def test_lost_claim_is_concurrent_modification(self, session, cart_service, make_product, owner_id):
        product = make_product(price=Decimal("10.00"))
        before = cart_service.add_item(session, owner_id, product.id, 1)
        refusing = CartService(_RefusingCartRepository(), ProductResolver.default())

        with pytest.raises(ConcurrentModificationError):
            refusing.add_item(session, owner_id, product.id, 2)
        with pytest.raises(ConcurrentModificationError):
            refusing.clear(session, owner_id)

        after = cart_service.read_cart(session, owner_id)
        assert after.lines[0].quantity == 1
        assert after.total_amount == before.total_amount
        assert after.version == before.version

    def test_product_is_resolved_after_cart_lock(self, session, make_product, owner_id):
        product = make_product()
        log = _CallLog()
        service = CartService(_LoggingCartRepository(log), _LoggingResolver(log))

        service.add_item(session, owner_id, product.id, 1)
        service.add_item(session, owner_id, product.id, 1)

        assert log.calls == ["lock", "resolve", "lock", "resolve"]

    def test_unknown_product_leaves_no_cart(self, session, cart_service, owner_id):
        with pytest.raises(NotFoundError):
            cart_service.add_item(session, owner_id, uuid.uuid4(), 1)

        assert CartRepository().get_by_owner(session, owner_id) is None

    def test_views_are_built_before_commit(self, engine, session, cart_service, make_product, owner_id):
        product = make_product(stock=10)
        start = cart_service.add_item(session, owner_id, product.id, 1).version
        service = _CommittedVersionCartService(engine)

        views = [
            service.add_item(session, owner_id, product.id, 1),
            service.update_item_quantity(session, owner_id, product.id, 4),
            service.remove_item(session, owner_id, product.id),
            service.clear(session, owner_id),
        ]

        # Each view already carries its own write while the stored cart
        # still shows the previous one.
        assert [view.version for view in views] == [start + 1, start + 2, start + 3, start + 4]
        assert service.committed_versions == [start, start + 1, start + 2, start + 3]
        for view in views:
            assert view.total_item_count == sum(line.quantity for line in view.lines)
