import logging
from uuid import UUID

from sqlalchemy import inspect, select, update
from sqlalchemy.orm import Session

from ..core.exceptions import (
    ErrorCode, ValidationError, ProductNotFoundError, InsufficientStockError
)
from ..products.models import Product

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Stock mutations for products.

    Both operations are a single UPDATE statement, so the stock check and the
    write cannot be separated by a concurrent request. Neither commits: the
    caller owns the transaction and decides whether the change sticks.
    """

    @staticmethod
    def check_and_reserve(db: Session, product_id: UUID, quantity: int) -> None:
        """Decrement stock by ``quantity`` only if that much is available."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", context={"quantity": quantity},
                                  code=ErrorCode.QUANTITY_OUT_OF_RANGE)

        result = db.execute(
            update(Product)
            .where(Product.id == product_id, Product.count_in_stock >= quantity)
            .values(count_in_stock=Product.count_in_stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            _expire_cached_stock(db, product_id)
            logger.debug(f"Reserved {quantity} unit(s) of product {product_id}")
            return

        row = db.execute(
            select(Product.name, Product.count_in_stock).where(Product.id == product_id)
        ).first()
        if row is None:
            raise ProductNotFoundError(product_id)

        logger.warning(
            f"Stock reservation rejected for product {product_id}: "
            f"requested {quantity}, available {row.count_in_stock}"
        )
        raise InsufficientStockError(
            product_name=row.name,
            available=row.count_in_stock,
            requested=quantity,
            product_id=product_id,
        )

    @staticmethod
    def release(db: Session, product_id: UUID, quantity: int) -> None:
        """Return ``quantity`` units to stock (restock or compensation)."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", context={"quantity": quantity},
                                  code=ErrorCode.QUANTITY_OUT_OF_RANGE)

        result = db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(count_in_stock=Product.count_in_stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ProductNotFoundError(product_id)
        _expire_cached_stock(db, product_id)
        logger.info(f"Released {quantity} unit(s) of product {product_id}")


def _expire_cached_stock(db: Session, product_id: UUID) -> None:
    """Drop the session's cached stock so the next read sees the new count."""
    for obj in list(db.identity_map.values()):
        if isinstance(obj, Product) and inspect(obj).identity == (product_id,):
            db.expire(obj, ["count_in_stock"])
