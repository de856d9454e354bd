"""
Payment state reconciliation.

Two independent paths can report the same payment: the client calling
``PUT /orders/{id}/pay`` after Stripe.js confirms, and Stripe's webhook. Both
end in ``OrderService.mark_order_paid``, whose compare-and-set lets only the
first one through.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from . import stripe_service
from ..core.exceptions import (
    AlreadyPaidError, AuthorizationError, AdminRequiredError, OrderNotFoundError,
    PaymentNotConfirmedError
)
from ..orders.models import Order, PaymentMethod
from ..orders.service import OrderService
from ..schemas.orders import PaymentConfirmationRequest
from ..users.models import User

logger = logging.getLogger(__name__)


def _load_owned_order(db: Session, order_id: UUID, caller: User) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    if order.user_id != caller.id:
        raise AuthorizationError()
    return order


def create_payment_intent_for_order(db: Session, order_id: UUID, caller: User) -> str:
    """
    Return a client secret for paying ``order_id``.

    Reuses the intent already bound to the order when there is one, so repeated
    calls never charge twice.
    """
    order = _load_owned_order(db, order_id, caller)
    if order.is_paid:
        raise AlreadyPaidError(order_id)
    OrderService.ensure_payment_method(order, PaymentMethod.STRIPE)

    if order.payment_intent_id:
        intent = stripe_service.retrieve_payment_intent(order.payment_intent_id)
        logger.info(f"Reusing payment intent {intent['id']} for order {order_id}")
        return intent["client_secret"]

    intent = stripe_service.create_payment_intent(
        amount_cents=order.total_price_cents,
        metadata={"orderId": str(order.id), "userId": str(caller.id)},
        idempotency_key=f"order-{order.id}",
    )
    if not OrderService.attach_payment_intent(db, order.id, intent["id"]):
        db.refresh(order)
        intent = stripe_service.retrieve_payment_intent(order.payment_intent_id)
    return intent["client_secret"]


def _check_intent_matches_order(intent: Dict[str, Any], order: Order) -> Optional[str]:
    """Return why ``intent`` does not pay for ``order``, or None if it does."""
    if intent.get("status") != "succeeded":
        return f"payment status is '{intent.get('status')}'"
    metadata = intent.get("metadata") or {}
    if metadata.get("orderId") != str(order.id):
        return "payment belongs to a different order"
    if intent.get("amount") != order.total_price_cents:
        return "payment amount does not match order total"
    return None


def on_client_payment_confirmed(db: Session, order_id: UUID, caller: User,
                                confirmation: PaymentConfirmationRequest) -> Order:
    """Client-driven confirmation path behind ``PUT /orders/{id}/pay``."""
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    if order.payment_method != PaymentMethod.STRIPE:
        # Manual methods: an admin records the result
        if not caller.is_admin:
            raise AdminRequiredError()
        payment_result = {
            "id": confirmation.id,
            "status": confirmation.status,
            "update_time": confirmation.update_time,
            "email_address": confirmation.email_address,
        }
        order, _ = OrderService.mark_order_paid(db, order.id, payment_result)
        return order

    if order.user_id != caller.id:
        raise AuthorizationError()
    if order.is_paid:
        return order

    payment_intent_id = confirmation.payment_intent_id or order.payment_intent_id
    if not payment_intent_id:
        raise PaymentNotConfirmedError(
            "No payment has been started for this order",
            context={"order_id": str(order.id)},
        )

    intent = stripe_service.retrieve_payment_intent(payment_intent_id)
    mismatch = _check_intent_matches_order(intent, order)
    if mismatch:
        logger.warning(f"Rejected client payment confirmation for order {order.id}: {mismatch}")
        raise PaymentNotConfirmedError(
            "Payment could not be confirmed",
            context={"order_id": str(order.id), "payment_intent_id": payment_intent_id},
        )

    order, _ = OrderService.mark_order_paid(
        db, order.id, stripe_service.payment_result_from_intent(intent)
    )
    return order


def _handle_payment_succeeded(db: Session, intent: Dict[str, Any]) -> None:
    metadata = intent.get("metadata") or {}
    raw_order_id = metadata.get("orderId")
    if not raw_order_id:
        logger.warning(f"payment_intent.succeeded {intent.get('id')} carries no orderId; discarded")
        return

    try:
        order_id = UUID(raw_order_id)
    except ValueError:
        logger.warning(f"payment_intent.succeeded {intent.get('id')} has malformed orderId {raw_order_id!r}")
        return

    order = db.get(Order, order_id)
    if order is None:
        logger.warning(f"payment_intent.succeeded {intent.get('id')} for unknown order {order_id}; discarded")
        return
    if intent.get("amount") != order.total_price_cents:
        logger.error(
            f"payment_intent.succeeded {intent.get('id')} amount {intent.get('amount')} "
            f"does not match order {order_id} total {order.total_price_cents}; discarded"
        )
        return

    OrderService.mark_order_paid(db, order_id, stripe_service.payment_result_from_intent(intent))


def handle_webhook_event(db: Session, event: Dict[str, Any]) -> None:
    """Apply a verified Stripe event. Unknown event types are acknowledged and ignored."""
    event_type = event["type"]
    intent = event["data"]["object"]
    logger.info(f"Processing webhook event: {event_type} ({event.get('id')})")

    if event_type == "payment_intent.succeeded":
        _handle_payment_succeeded(db, intent)
    elif event_type == "payment_intent.payment_failed":
        metadata = intent.get("metadata") or {}
        logger.warning(f"Payment failed: {intent.get('id')} for order {metadata.get('orderId')}")
    else:
        logger.info(f"Unhandled event type: {event_type}")


def on_gateway_webhook(db: Session, payload: bytes, signature: Optional[str]) -> None:
    """
    Verify and apply a webhook delivery.

    Signature failures propagate (400). Anything that goes wrong after the
    event is verified is logged and swallowed so Stripe does not retry an
    event that will never succeed.
    """
    event = stripe_service.verify_webhook_signature(payload, signature)
    try:
        handle_webhook_event(db, event)
    except Exception:
        db.rollback()
        logger.exception(f"Error handling webhook event {event.get('id')}")
