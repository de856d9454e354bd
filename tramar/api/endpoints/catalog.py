# tramar/api/endpoints/catalog.py

from typing import Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Query

from ...auth.service import AdminUser
from ...database.core import DbSession
from ...products.service import ProductService
from ...schemas.products import ProductListResponse, ProductResponse, RestockRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProductListResponse)
async def list_products(
    db: DbSession,
    keyword: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None, max_length=50),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100, alias="pageSize"),
):
    """List catalog products, optionally filtered by name keyword and category."""
    products, total, pages = ProductService.list_products(db, keyword, category, page, page_size)
    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        page=page,
        pages=pages,
        total=total,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: UUID, db: DbSession):
    return ProductService.get_product(db, product_id)


@router.post("/{product_id}/restock", response_model=ProductResponse)
async def restock_product(product_id: UUID, request: RestockRequest, admin: AdminUser, db: DbSession):
    """Add units back to stock (admin only)."""
    product = ProductService.restock(db, product_id, request.quantity)
    logger.info(f"Admin {admin.id} restocked {product.name} by {request.quantity}")
    return product
