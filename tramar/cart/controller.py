from uuid import UUID

from fastapi import APIRouter
from starlette import status

from ..auth.service import CurrentUser
from ..database.core import DbSession
from ..schemas.cart import CartResponse, AddCartItemRequest, UpdateCartItemRequest
from .service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(cart) -> CartResponse:
    if cart is None:
        return CartResponse()
    return CartResponse.model_validate(cart)


@router.get("", response_model=CartResponse)
async def get_cart(current_user: CurrentUser, db: DbSession):
    """Get the authenticated user's cart"""
    return _cart_response(CartService.get_cart(db, current_user.id))


@router.post("", response_model=CartResponse)
async def add_to_cart(request: AddCartItemRequest, current_user: CurrentUser, db: DbSession):
    """Add a product to the cart"""
    cart = CartService.add_item(db, current_user.id, request.product_id, request.quantity)
    return _cart_response(cart)


@router.delete("", response_model=CartResponse)
async def clear_cart(current_user: CurrentUser, db: DbSession):
    CartService.clear_cart(db, current_user.id)
    return CartResponse()


@router.put("/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: UUID,
    request: UpdateCartItemRequest,
    current_user: CurrentUser,
    db: DbSession
):
    cart = CartService.update_item(db, current_user.id, item_id, request.quantity)
    return _cart_response(cart)


@router.delete("/{item_id}", response_model=CartResponse, status_code=status.HTTP_200_OK)
async def remove_cart_item(item_id: UUID, current_user: CurrentUser, db: DbSession):
    cart = CartService.remove_item(db, current_user.id, item_id)
    return _cart_response(cart)
