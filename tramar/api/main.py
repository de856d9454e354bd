# tramar/api/main.py

from fastapi import APIRouter
from .endpoints import catalog, payment

# Create main API router
api_router = APIRouter()

api_router.include_router(
    catalog.router,
    prefix="/products",
    tags=["Products"]
)

api_router.include_router(
    payment.router,
    prefix="/payment",
    tags=["Payment"]
)
