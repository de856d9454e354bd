# tramar/core/exceptions.py

from enum import Enum
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Request validation errors
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    QUANTITY_OUT_OF_RANGE = "QUANTITY_OUT_OF_RANGE"

    # Lookup errors
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    CART_ITEM_NOT_FOUND = "CART_ITEM_NOT_FOUND"

    # Auth errors
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"

    # Business rule errors
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    ORDER_ALREADY_PAID = "ORDER_ALREADY_PAID"
    ORDER_ALREADY_DELIVERED = "ORDER_ALREADY_DELIVERED"
    ORDER_NOT_PAID = "ORDER_NOT_PAID"
    PAYMENT_NOT_CONFIRMED = "PAYMENT_NOT_CONFIRMED"
    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"

    # Payment gateway errors
    SIGNATURE_VERIFICATION_FAILED = "SIGNATURE_VERIFICATION_FAILED"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"

    # System errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class TramarError(Exception):
    """Base exception for all Tramar application errors."""

    log_level = logging.WARNING

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        technical_details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggested_action: Optional[str] = None
    ):
        self.code = code
        self.user_message = user_message
        self.technical_details = technical_details
        self.context = context or {}
        self.suggested_action = suggested_action

        logger.log(
            self.log_level,
            f"Tramar Error: {code.value}",
            extra={
                "error_code": code.value,
                "user_message": user_message,
                "technical_details": technical_details,
                "context": self.context,
                "suggested_action": suggested_action
            }
        )

        super().__init__(self.user_message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to API response format."""
        response = {
            "message": self.user_message,
            "code": self.code.value,
            "context": self.context
        }

        if self.suggested_action:
            response["suggested_action"] = self.suggested_action

        return response


class ValidationError(TramarError):
    """Missing or malformed input."""

    def __init__(self, user_message: str, context: Optional[Dict[str, Any]] = None,
                 code: ErrorCode = ErrorCode.INVALID_PARAMETERS):
        super().__init__(code=code, user_message=user_message, context=context)


class NotFoundError(TramarError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: Any):
        super().__init__(
            code=ErrorCode.PRODUCT_NOT_FOUND,
            user_message="Product not found",
            context={"product_id": str(product_id)}
        )


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: Any):
        super().__init__(
            code=ErrorCode.ORDER_NOT_FOUND,
            user_message="Order not found",
            context={"order_id": str(order_id)}
        )


class CartItemNotFoundError(NotFoundError):
    def __init__(self, item_id: Any):
        super().__init__(
            code=ErrorCode.CART_ITEM_NOT_FOUND,
            user_message="Item not found in cart",
            context={"item_id": str(item_id)}
        )


class AuthenticationError(TramarError):
    """Exception raised for authentication-related errors."""

    def __init__(self, message: str = "Token is invalid or expired."):
        self.message = message
        super().__init__(code=ErrorCode.NOT_AUTHENTICATED, user_message=message)


class AuthorizationError(TramarError):
    """The caller is authenticated but does not own the resource."""

    def __init__(self, message: str = "Not authorized to access this order",
                 code: ErrorCode = ErrorCode.NOT_AUTHORIZED):
        super().__init__(code=code, user_message=message)


class AdminRequiredError(AuthorizationError):
    def __init__(self):
        super().__init__(
            message="Not authorized to access this route. Admin privileges required.",
            code=ErrorCode.ADMIN_REQUIRED
        )


class InsufficientStockError(TramarError):
    """Requested quantity exceeds what is left in stock."""

    def __init__(self, product_name: str, available: int, requested: int, product_id: Any = None):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            code=ErrorCode.INSUFFICIENT_STOCK,
            user_message=f"Insufficient stock for '{product_name}': only {available} available",
            context={
                "product_id": str(product_id) if product_id is not None else None,
                "product_name": product_name,
                "available": available,
                "requested": requested
            },
            suggested_action=f"Reduce the quantity of '{product_name}' to {available} or less"
        )


class AlreadyPaidError(TramarError):
    def __init__(self, order_id: Any):
        super().__init__(
            code=ErrorCode.ORDER_ALREADY_PAID,
            user_message="Order is already paid",
            context={"order_id": str(order_id)}
        )


class AlreadyDeliveredError(TramarError):
    def __init__(self, order_id: Any):
        super().__init__(
            code=ErrorCode.ORDER_ALREADY_DELIVERED,
            user_message="Order is already delivered",
            context={"order_id": str(order_id)}
        )


class OrderNotPaidError(TramarError):
    def __init__(self, order_id: Any):
        super().__init__(
            code=ErrorCode.ORDER_NOT_PAID,
            user_message="Order must be paid before it can be delivered",
            context={"order_id": str(order_id)}
        )


class PaymentNotConfirmedError(TramarError):
    def __init__(self, user_message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.PAYMENT_NOT_CONFIRMED,
            user_message=user_message,
            context=context
        )


class SignatureVerificationError(TramarError):
    """Webhook signature check failed. The message never says why."""

    def __init__(self, technical_details: Optional[str] = None):
        super().__init__(
            code=ErrorCode.SIGNATURE_VERIFICATION_FAILED,
            user_message="Webhook signature verification failed",
            technical_details=technical_details
        )


class PaymentGatewayError(TramarError):
    log_level = logging.ERROR

    def __init__(self, technical_details: Optional[str] = None):
        super().__init__(
            code=ErrorCode.PAYMENT_GATEWAY_ERROR,
            user_message="Payment provider is unavailable. Please try again later.",
            technical_details=technical_details
        )


class InternalError(TramarError):
    log_level = logging.ERROR

    def __init__(self, technical_details: Optional[str] = None):
        super().__init__(
            code=ErrorCode.INTERNAL_SERVER_ERROR,
            user_message="An internal server error occurred. Please try again later.",
            technical_details=technical_details
        )


# Convenience functions for common errors
def raise_invalid_parameter(parameter_name: str, value: Any, expected_format: str):
    """Raise a parameter validation error."""
    raise ValidationError(
        f"Invalid value for '{parameter_name}': {value}. Expected: {expected_format}",
        context={
            "parameter_name": parameter_name,
            "parameter_value": str(value),
            "expected_format": expected_format
        }
    )


def raise_quantity_error(quantity: int, max_quantity: int):
    """Raise a quantity range error."""
    raise ValidationError(
        f"Quantity must be between 1 and {max_quantity}. Provided: {quantity}",
        context={"quantity": quantity, "max_quantity": max_quantity},
        code=ErrorCode.QUANTITY_OUT_OF_RANGE
    )
