from pydantic import Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from .base import APIModel
from ..orders.models import PaymentMethod


class OrderItemRequest(APIModel):
    """A requested line. Any name or price the client sends along is ignored."""
    product: UUID
    quantity: int = Field(..., ge=1)


class ShippingAddressSchema(APIModel):
    address: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=100)


class CreateOrderRequest(APIModel):
    order_items: List[OrderItemRequest] = Field(..., min_length=1)
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod


class PaymentResultSchema(APIModel):
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class PaymentConfirmationRequest(APIModel):
    """
    Body of ``PUT /orders/{id}/pay``.

    Card orders only need ``paymentIntentId`` (or nothing, when the order already
    holds its intent); the result is read back from Stripe. The remaining fields
    are the manually recorded result an admin supplies for PayPal/COD orders.
    """
    payment_intent_id: Optional[str] = None
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class OrderItemResponse(APIModel):
    name: str
    quantity: int
    image: str
    price: float
    product: UUID


class OrderResponse(APIModel):
    id: UUID
    user_id: UUID
    order_items: List[OrderItemResponse]
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    payment_result: Optional[PaymentResultSchema] = None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(APIModel):
    orders: List[OrderResponse]
    count: int
