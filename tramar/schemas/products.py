from pydantic import Field
from typing import List
from datetime import datetime
from uuid import UUID

from .base import APIModel


class ProductResponse(APIModel):
    id: UUID
    name: str
    description: str
    category: str
    image: str
    price: float
    count_in_stock: int
    created_at: datetime


class ProductListResponse(APIModel):
    products: List[ProductResponse]
    page: int
    pages: int
    total: int


class RestockRequest(APIModel):
    quantity: int = Field(..., ge=1, le=10000)
