import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Enum, CheckConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..utils.money import from_cents


class PaymentMethod(str, enum.Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    COD = "cod"


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "total_price_cents = items_price_cents + tax_price_cents + shipping_price_cents",
            name="ck_orders_total_matches_parts",
        ),
        CheckConstraint("NOT is_delivered OR is_paid", name="ck_orders_delivered_requires_paid"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # {"address", "city", "postal_code", "country"}
    shipping_address = Column(JSON, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)

    # Money stored as Integer (in cents), computed once at placement
    items_price_cents = Column(Integer, nullable=False)
    tax_price_cents = Column(Integer, nullable=False)
    shipping_price_cents = Column(Integer, nullable=False)
    total_price_cents = Column(Integer, nullable=False)

    # One-way latch: only OrderService.mark_order_paid flips it
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_result = Column(JSON, nullable=True)
    payment_intent_id = Column(String, nullable=True, index=True)

    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("User")
    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    @property
    def items_price(self):
        return from_cents(self.items_price_cents)

    @property
    def tax_price(self):
        return from_cents(self.tax_price_cents)

    @property
    def shipping_price(self):
        return from_cents(self.shipping_price_cents)

    @property
    def total_price(self):
        return from_cents(self.total_price_cents)

    def __repr__(self):
        return f"<Order(id='{self.id}', total={self.total_price_cents}, paid={self.is_paid})>"


class OrderItem(Base):
    """Line snapshot taken at placement time. Never recomputed from the catalog."""
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    # Weak reference, no foreign key
    product_id = Column(UUID(as_uuid=True), nullable=False)
    name = Column(String, nullable=False)
    image = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="order_items")

    @property
    def price(self):
        return from_cents(self.unit_price_cents)

    @property
    def product(self):
        return self.product_id
