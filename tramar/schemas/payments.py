from uuid import UUID

from .base import APIModel


class CreatePaymentIntentRequest(APIModel):
    order_id: UUID


class PaymentIntentResponse(APIModel):
    client_secret: str


class WebhookAck(APIModel):
    received: bool = True
