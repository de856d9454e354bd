import stripe
import logging
from typing import Any, Dict, Optional

from ..core.config import settings
from ..core.exceptions import PaymentGatewayError, SignatureVerificationError

logger = logging.getLogger(__name__)


def create_payment_intent(amount_cents: int, metadata: Dict[str, str], idempotency_key: str) -> stripe.PaymentIntent:
    """
    Create a Stripe PaymentIntent for ``amount_cents`` in the configured currency.

    The idempotency key makes a retried create for the same order return the
    intent Stripe already made instead of a second one.
    """
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=settings.STRIPE_CURRENCY,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            idempotency_key=idempotency_key,
            api_key=settings.STRIPE_SECRET_KEY,
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating payment intent ({idempotency_key}): {e}")
        raise PaymentGatewayError(technical_details=str(e))

    logger.info(f"Created payment intent {intent['id']} for {amount_cents} {settings.STRIPE_CURRENCY}")
    return intent


def retrieve_payment_intent(payment_intent_id: str) -> stripe.PaymentIntent:
    try:
        return stripe.PaymentIntent.retrieve(payment_intent_id, api_key=settings.STRIPE_SECRET_KEY)
    except stripe.StripeError as e:
        logger.error(f"Stripe error retrieving payment intent {payment_intent_id}: {e}")
        raise PaymentGatewayError(technical_details=str(e))


def verify_webhook_signature(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Verify the webhook signature to ensure it's from Stripe.

    Every failure raises the same ``SignatureVerificationError``; the reason is
    only logged.
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook")
        raise SignatureVerificationError(technical_details="webhook secret not configured")
    if not signature:
        logger.warning("Webhook received without a Stripe-Signature header")
        raise SignatureVerificationError(technical_details="missing signature header")

    try:
        return stripe.Webhook.construct_event(
            payload,
            signature,
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
        )
    except ValueError as e:
        logger.warning("Invalid payload received in webhook")
        raise SignatureVerificationError(technical_details=f"invalid payload: {e}")
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid signature in webhook")
        raise SignatureVerificationError(technical_details=str(e))


def payment_result_from_intent(intent: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Build the order's ``payment_result`` from a PaymentIntent object."""
    return {
        "id": intent["id"],
        "status": intent.get("status"),
        "update_time": str(intent.get("created")) if intent.get("created") is not None else None,
        "email_address": intent.get("receipt_email"),
    }
