from pydantic import Field
from typing import List
from uuid import UUID

from .base import APIModel


class CartProductSummary(APIModel):
    id: UUID
    name: str
    price: float
    image: str


class CartLineResponse(APIModel):
    id: UUID
    product: CartProductSummary
    quantity: int
    price: float


class CartResponse(APIModel):
    items: List[CartLineResponse] = []
    total_amount: float = 0.0


class AddCartItemRequest(APIModel):
    product_id: UUID
    quantity: int = Field(1, ge=1)


class UpdateCartItemRequest(APIModel):
    quantity: int = Field(..., ge=1)
