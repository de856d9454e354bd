import math
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from .models import Product, PRODUCT_CATEGORIES
from ..core.exceptions import ProductNotFoundError, raise_invalid_parameter
from ..inventory.service import InventoryLedger

logger = logging.getLogger(__name__)


class ProductService:

    @staticmethod
    def list_products(db: Session, keyword: Optional[str] = None, category: Optional[str] = None,
                      page: int = 1, page_size: int = 12) -> Tuple[List[Product], int, int]:
        """
        Plain catalog listing.

        Returns:
            (products on this page, total matches, page count)
        """
        if category and category not in PRODUCT_CATEGORIES:
            raise_invalid_parameter("category", category, ", ".join(PRODUCT_CATEGORIES))

        query = db.query(Product)
        if keyword:
            query = query.filter(Product.name.ilike(f"%{keyword}%"))
        if category:
            query = query.filter(Product.category == category)

        total = query.count()
        products = query.order_by(Product.created_at.desc(), Product.name)\
                        .offset((page - 1) * page_size)\
                        .limit(page_size)\
                        .all()
        return products, total, max(1, math.ceil(total / page_size))

    @staticmethod
    def get_product(db: Session, product_id: UUID) -> Product:
        product = db.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    @staticmethod
    def restock(db: Session, product_id: UUID, quantity: int) -> Product:
        try:
            InventoryLedger.release(db, product_id, quantity)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return ProductService.get_product(db, product_id)
