# tramar/core/error_handlers.py

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging
import traceback
import uuid

from .exceptions import TramarError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_CODE_MAP = {
    ErrorCode.INVALID_PARAMETERS: 400,
    ErrorCode.QUANTITY_OUT_OF_RANGE: 400,
    ErrorCode.PRODUCT_NOT_FOUND: 404,
    ErrorCode.ORDER_NOT_FOUND: 404,
    ErrorCode.CART_ITEM_NOT_FOUND: 404,
    ErrorCode.NOT_AUTHENTICATED: 401,
    ErrorCode.NOT_AUTHORIZED: 401,
    ErrorCode.ADMIN_REQUIRED: 403,
    ErrorCode.EMAIL_ALREADY_REGISTERED: 400,
    ErrorCode.INSUFFICIENT_STOCK: 400,
    ErrorCode.ORDER_ALREADY_PAID: 400,
    ErrorCode.ORDER_ALREADY_DELIVERED: 400,
    ErrorCode.ORDER_NOT_PAID: 400,
    ErrorCode.PAYMENT_NOT_CONFIRMED: 400,
    ErrorCode.UNSUPPORTED_PAYMENT_METHOD: 400,
    ErrorCode.SIGNATURE_VERIFICATION_FAILED: 400,
    ErrorCode.PAYMENT_GATEWAY_ERROR: 502,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
}


def setup_error_handlers(app: FastAPI):
    """Set up global error handlers for the FastAPI application."""

    @app.exception_handler(TramarError)
    async def tramar_error_handler(request: Request, exc: TramarError):
        """Handle custom Tramar errors."""
        status_code = STATUS_CODE_MAP.get(exc.code, 400)

        logger.info(
            f"{request.method} {request.url.path} -> {status_code} {exc.code.value}",
            extra={
                "error_code": exc.code.value,
                "context": exc.context,
                "request_url": str(request.url),
                "request_method": request.method,
                "client_ip": request.client.host if request.client else None
            }
        )

        return JSONResponse(
            status_code=status_code,
            content=exc.to_response()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with better formatting."""
        errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"]
            })

        logger.warning(
            "Validation error",
            extra={
                "validation_errors": errors,
                "request_url": str(request.url),
                "request_method": request.method
            }
        )

        first = errors[0] if errors else None
        message = f"{first['field']}: {first['message']}" if first else "Request validation failed"
        return JSONResponse(
            status_code=400,
            content={
                "message": message,
                "code": "VALIDATION_ERROR",
                "details": errors
            }
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle standard HTTP exceptions with consistent format."""
        logger.warning(
            f"HTTP Exception: {exc.status_code}",
            extra={
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_url": str(request.url),
                "request_method": request.method
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message": exc.detail,
                "code": f"HTTP_{exc.status_code}"
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions with proper logging."""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
            extra={
                "exception_type": type(exc).__name__,
                "request_url": str(request.url),
                "request_method": request.method,
                "traceback": traceback.format_exc()
            }
        )

        # Don't expose internal details
        return JSONResponse(
            status_code=500,
            content={
                "message": "An internal server error occurred. Please try again later.",
                "code": ErrorCode.INTERNAL_SERVER_ERROR.value
            }
        )


# Middleware for request ID tracking
async def add_request_id_middleware(request: Request, call_next):
    """Add request ID for better error tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response
