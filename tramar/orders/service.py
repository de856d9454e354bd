from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Order, OrderItem
from ..cart.service import CartService
from ..core.config import settings
from ..core.exceptions import (
    ErrorCode, TramarError, ValidationError, ProductNotFoundError, OrderNotFoundError,
    AuthorizationError, InsufficientStockError, OrderNotPaidError, AlreadyDeliveredError,
    InternalError, raise_quantity_error
)
from ..inventory.service import InventoryLedger
from ..products.models import Product
from ..schemas.orders import CreateOrderRequest, OrderItemRequest
from ..services.pricing_engine import PricingEngine
from ..users.models import User

logger = logging.getLogger(__name__)


def _merge_requested_items(order_items: List[OrderItemRequest]) -> Dict[UUID, int]:
    """Sum quantities of repeated products, keeping first-seen order."""
    merged: Dict[UUID, int] = {}
    for item in order_items:
        merged[item.product] = merged.get(item.product, 0) + item.quantity
    return merged


class OrderService:

    @staticmethod
    def place_order(db: Session, user_id: UUID, order_data: CreateOrderRequest,
                    pricing_engine: Optional[PricingEngine] = None) -> Order:
        """
        Place an order from (product, quantity) pairs.

        Prices come from the catalog, never from the request. Persisting the
        order, decrementing stock and deleting the cart happen in one
        transaction: if any step fails nothing is written and the error that
        caused it is raised to the caller.
        """
        requested = _merge_requested_items(order_data.order_items)
        if len(requested) > settings.MAX_ITEMS_PER_ORDER:
            raise ValidationError(
                f"An order cannot contain more than {settings.MAX_ITEMS_PER_ORDER} different products",
                context={"item_count": len(requested)},
            )
        for quantity in requested.values():
            if quantity > settings.MAX_QUANTITY_PER_ITEM:
                raise_quantity_error(quantity, settings.MAX_QUANTITY_PER_ITEM)

        pricing_engine = pricing_engine or PricingEngine()

        try:
            products: Dict[UUID, Product] = {}
            for product_id, quantity in requested.items():
                product = db.get(Product, product_id)
                if product is None:
                    raise ProductNotFoundError(product_id)
                if product.count_in_stock < quantity:
                    raise InsufficientStockError(
                        product_name=product.name,
                        available=product.count_in_stock,
                        requested=quantity,
                        product_id=product_id,
                    )
                products[product_id] = product

            breakdown = pricing_engine.price(
                (products[product_id].price_cents, quantity)
                for product_id, quantity in requested.items()
            )

            order = Order(
                user_id=user_id,
                shipping_address=order_data.shipping_address.model_dump(),
                payment_method=order_data.payment_method,
                items_price_cents=breakdown.items_cents,
                tax_price_cents=breakdown.tax_cents,
                shipping_price_cents=breakdown.shipping_cents,
                total_price_cents=breakdown.total_cents,
                is_paid=False,
                is_delivered=False,
            )
            order.order_items = [
                OrderItem(
                    position=position,
                    product_id=product_id,
                    name=products[product_id].name,
                    image=products[product_id].image,
                    quantity=quantity,
                    unit_price_cents=products[product_id].price_cents,
                )
                for position, (product_id, quantity) in enumerate(requested.items())
            ]
            db.add(order)
            db.flush()

            # Fixed lock order across concurrent placements
            for product_id in sorted(requested):
                InventoryLedger.check_and_reserve(db, product_id, requested[product_id])

            CartService.clear_cart(db, user_id, commit=False)
            db.commit()
        except TramarError as e:
            db.rollback()
            logger.warning(f"Order placement for user {user_id} rolled back: {e}")
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error placing order for user {user_id}: {e}")
            raise InternalError(technical_details=str(e)) from e
        except Exception:
            db.rollback()
            raise

        db.refresh(order)
        logger.info(
            f"Order {order.id} placed by user {user_id}: "
            f"{len(requested)} product(s), total {order.total_price}"
        )
        return order

    @staticmethod
    def get_order(db: Session, order_id: UUID, caller: User) -> Order:
        """Owner or admin only."""
        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != caller.id and not caller.is_admin:
            raise AuthorizationError()
        return order

    @staticmethod
    def get_user_orders(db: Session, user_id: UUID) -> List[Order]:
        return db.query(Order).filter(Order.user_id == user_id)\
                 .order_by(Order.created_at.desc())\
                 .all()

    @staticmethod
    def get_all_orders(db: Session) -> List[Order]:
        return db.query(Order).order_by(Order.created_at.desc()).all()

    @staticmethod
    def mark_order_paid(db: Session, order_id: UUID, payment_result: dict) -> Tuple[Order, bool]:
        """
        Flip ``is_paid`` false -> true at most once.

        The flip is a compare-and-set on ``is_paid``; a second caller matches no
        row and gets the order back untouched, so the first ``paid_at`` and
        ``payment_result`` are the ones that stay.

        Returns:
            (order, changed) where ``changed`` is False for a duplicate attempt
        """
        now = datetime.now(timezone.utc)
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.is_paid.is_(False))
            .values(is_paid=True, paid_at=now, payment_result=payment_result, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        db.commit()

        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if changed:
            logger.info(f"Order {order_id} marked paid (payment {payment_result.get('id')})")
        else:
            logger.info(f"Order {order_id} was already paid; ignoring duplicate payment notice")
        return order, changed

    @staticmethod
    def mark_order_delivered(db: Session, order_id: UUID) -> Order:
        now = datetime.now(timezone.utc)
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.is_paid.is_(True), Order.is_delivered.is_(False))
            .values(is_delivered=True, delivered_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        db.commit()

        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not changed:
            if not order.is_paid:
                raise OrderNotPaidError(order_id)
            raise AlreadyDeliveredError(order_id)

        logger.info(f"Order {order_id} marked delivered")
        return order

    @staticmethod
    def attach_payment_intent(db: Session, order_id: UUID, payment_intent_id: str) -> bool:
        """Bind a gateway intent to the order unless one is already bound."""
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_intent_id.is_(None))
            .values(payment_intent_id=payment_intent_id)
            .execution_options(synchronize_session=False)
        )
        attached = result.rowcount == 1
        db.commit()
        if not attached:
            logger.warning(f"Order {order_id} already has a payment intent; kept the existing one")
        return attached

    @staticmethod
    def ensure_payment_method(order: Order, payment_method) -> None:
        if order.payment_method != payment_method:
            raise ValidationError(
                f"Order payment method is '{order.payment_method.value}'",
                context={"order_id": str(order.id), "payment_method": order.payment_method.value},
                code=ErrorCode.UNSUPPORTED_PAYMENT_METHOD,
            )
