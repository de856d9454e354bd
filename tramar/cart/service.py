from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from .models import Cart, CartLine
from ..core.config import settings
from ..core.exceptions import (
    ProductNotFoundError, CartItemNotFoundError, InsufficientStockError, raise_quantity_error
)
from ..products.models import Product

logger = logging.getLogger(__name__)


class CartService:
    """Per-user cart lines. A cart row is only created when the first item is added."""

    @staticmethod
    def get_cart(db: Session, user_id: UUID) -> Optional[Cart]:
        return db.query(Cart).filter(Cart.user_id == user_id).first()

    @staticmethod
    def _get_or_create_cart(db: Session, user_id: UUID) -> Cart:
        cart = CartService.get_cart(db, user_id)
        if cart is None:
            cart = Cart(user_id=user_id)
            db.add(cart)
            db.flush()
        return cart

    @staticmethod
    def _check_quantity(product: Product, quantity: int) -> None:
        if quantity < 1 or quantity > settings.MAX_QUANTITY_PER_ITEM:
            raise_quantity_error(quantity, settings.MAX_QUANTITY_PER_ITEM)
        if product.count_in_stock < quantity:
            raise InsufficientStockError(
                product_name=product.name,
                available=product.count_in_stock,
                requested=quantity,
                product_id=product.id,
            )

    @staticmethod
    def add_item(db: Session, user_id: UUID, product_id: UUID, quantity: int = 1) -> Cart:
        """Add a product, accumulating onto an existing line for the same product."""
        product = db.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        cart = CartService._get_or_create_cart(db, user_id)
        line = next((item for item in cart.items if item.product_id == product_id), None)
        new_quantity = quantity + (line.quantity if line else 0)
        CartService._check_quantity(product, new_quantity)

        try:
            if line:
                line.quantity = new_quantity
                line.price_cents = product.price_cents
            else:
                cart.items.append(CartLine(
                    product_id=product.id,
                    quantity=quantity,
                    price_cents=product.price_cents,
                ))
            db.commit()
            db.refresh(cart)
        except Exception as e:
            logger.error(f"Error adding product {product_id} to cart of user {user_id}: {e}")
            db.rollback()
            raise

        logger.info(f"User {user_id} added {quantity} x {product.name} to cart")
        return cart

    @staticmethod
    def update_item(db: Session, user_id: UUID, item_id: UUID, quantity: int) -> Cart:
        cart = CartService.get_cart(db, user_id)
        line = next((item for item in cart.items if item.id == item_id), None) if cart else None
        if line is None:
            raise CartItemNotFoundError(item_id)

        CartService._check_quantity(line.product, quantity)
        line.quantity = quantity
        db.commit()
        db.refresh(cart)
        return cart

    @staticmethod
    def remove_item(db: Session, user_id: UUID, item_id: UUID) -> Cart:
        cart = CartService.get_cart(db, user_id)
        line = next((item for item in cart.items if item.id == item_id), None) if cart else None
        if line is None:
            raise CartItemNotFoundError(item_id)

        cart.items.remove(line)
        db.commit()
        db.refresh(cart)
        return cart

    @staticmethod
    def clear_cart(db: Session, user_id: UUID, commit: bool = True) -> None:
        """
        Delete the user's cart and all of its lines.

        Order placement passes ``commit=False`` so the delete joins its transaction.
        """
        cart = CartService.get_cart(db, user_id)
        if cart is None:
            return
        db.delete(cart)
        if commit:
            db.commit()
        else:
            db.flush()
        logger.debug(f"Cleared cart for user {user_id}")
