# Central models file so every table is registered on Base.metadata
# before create_all runs

from .core import Base

from ..users.models import User, UserRole
from ..products.models import Product
from ..cart.models import Cart, CartLine
from ..orders.models import Order, OrderItem, PaymentMethod

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Product",
    "Cart",
    "CartLine",
    "Order",
    "OrderItem",
    "PaymentMethod",
]
