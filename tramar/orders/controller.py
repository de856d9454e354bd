from uuid import UUID

from fastapi import APIRouter
from starlette import status

from ..auth.service import CurrentUser, AdminUser
from ..database.core import DbSession
from ..schemas.orders import (
    CreateOrderRequest, OrderResponse, OrderListResponse, PaymentConfirmationRequest
)
from ..services import payment_reconciliation
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order_data: CreateOrderRequest, current_user: CurrentUser, db: DbSession):
    """Place an order for the authenticated user. Prices are taken from the catalog."""
    return OrderService.place_order(db, current_user.id, order_data)


@router.get("", response_model=OrderListResponse)
async def get_all_orders(admin: AdminUser, db: DbSession):
    """Get every order (admin only)"""
    orders = OrderService.get_all_orders(db)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], count=len(orders))


@router.get("/myorders", response_model=OrderListResponse)
async def get_my_orders(current_user: CurrentUser, db: DbSession):
    orders = OrderService.get_user_orders(db, current_user.id)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders], count=len(orders))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, current_user: CurrentUser, db: DbSession):
    """Get a specific order (owner or admin)"""
    return OrderService.get_order(db, order_id, current_user)


@router.put("/{order_id}/pay", response_model=OrderResponse)
async def update_order_to_paid(
    order_id: UUID,
    confirmation: PaymentConfirmationRequest,
    current_user: CurrentUser,
    db: DbSession
):
    """Confirm payment from the client side. Card payments are verified with Stripe."""
    return payment_reconciliation.on_client_payment_confirmed(db, order_id, current_user, confirmation)


@router.put("/{order_id}/deliver", response_model=OrderResponse)
async def update_order_to_delivered(order_id: UUID, admin: AdminUser, db: DbSession):
    return OrderService.mark_order_delivered(db, order_id)
