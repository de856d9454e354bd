# tramar/api/endpoints/payment.py

from fastapi import APIRouter, Request
import logging

from ...auth.service import CurrentUser
from ...database.core import DbSession
from ...schemas.payments import CreatePaymentIntentRequest, PaymentIntentResponse, WebhookAck
from ...services import payment_reconciliation

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(request: CreatePaymentIntentRequest, current_user: CurrentUser, db: DbSession):
    """Create (or reuse) the Stripe PaymentIntent for an unpaid card order."""
    client_secret = payment_reconciliation.create_payment_intent_for_order(db, request.order_id, current_user)
    return PaymentIntentResponse(client_secret=client_secret)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(request: Request, db: DbSession):
    """
    Handle Stripe webhook events for payment confirmations.
    This endpoint is called by Stripe and doesn't require authentication.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    logger.info(f"Received webhook request: content-length={len(payload)}")

    payment_reconciliation.on_gateway_webhook(db, payload, sig_header)
    return WebhookAck(received=True)
