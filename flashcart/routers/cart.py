# flashcart/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from flashcart.core.auth import Principal, require_auth
from flashcart.database import get_session
from flashcart.repositories.cart_repo import CartRepository
from flashcart.schemas.cart import CartRead, CartItemCreate, CartItemUpdate
from flashcart.services.cart_service import CartService
from flashcart.services.product_resolver import ProductResolver

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(CartRepository(), ProductResolver.default())


@router.get("", response_model=CartRead)
def get_my_cart(
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Get current user's cart.

    Lines whose product disappeared from both catalogs are pruned (and the
    pruned cart saved) before the response is built.
    """
    return service.read_cart(session, principal.id)


@router.post("", response_model=CartRead)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Add product to the current user's cart.

    Returns the updated cart.
    """
    return service.add_item(session, principal.id, payload.product_id, payload.quantity)


@router.patch("/{product_id}", response_model=CartRead)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Update quantity of a product in the cart.

    Returns the updated cart.
    """
    return service.update_item_quantity(
        session=session,
        owner_id=principal.id,
        product_id=product_id,
        quantity=payload.quantity,
    )


@router.delete("/{product_id}", response_model=CartRead)
def remove_cart_item(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Remove a product from the cart.

    Returns the updated cart.
    """
    return service.remove_item(session, principal.id, product_id)


@router.delete("", response_model=CartRead)
def clear_cart(
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Clear the entire cart.

    Returns an empty cart.
    """
    return service.clear(session, principal.id)
