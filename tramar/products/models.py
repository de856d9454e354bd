import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID

from ..database.core import Base
from ..utils.money import from_cents

PRODUCT_CATEGORIES = (
    "cpu",
    "gpu",
    "motherboard",
    "memory",
    "storage",
    "psu",
    "case",
    "cooling",
    "peripherals",
    "other",
)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("count_in_stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="other", index=True)
    image = Column(String, nullable=False, default="no-image.jpg")
    # Money stored as Integer (in cents), e.g. 149.99 is stored as 14999
    price_cents = Column(Integer, nullable=False)
    # Only ever changed through InventoryLedger's conditional statements
    count_in_stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    @property
    def price(self):
        return from_cents(self.price_cents)

    def __repr__(self):
        return f"<Product(name='{self.name}', stock={self.count_in_stock})>"
