from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.auth.dependencies import get_current_user, get_optional_user
from csr26_api.domains.payments.gateway import StripeGateway, get_stripe_gateway
from csr26_api.domains.payments.models import (
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
    WebhookAck,
)
from csr26_api.domains.payments.service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_service(
    db: Prisma = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PaymentService:
    return PaymentService(db, gateway)


@router.post(
    "/create-intent",
    response_model=PaymentIntentResponse,
    operation_id="createPaymentIntent",
)
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    user: Optional[User] = Depends(get_optional_user),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    return await service.create_intent(body, user)


@router.post(
    "/resume/{transaction_id}",
    response_model=PaymentIntentResponse,
    operation_id="resumePayment",
)
async def resume_payment(
    transaction_id: str,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    return await service.resume_payment(transaction_id, user)


@router.post("/webhook", response_model=WebhookAck, operation_id="stripeWebhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    service: PaymentService = Depends(get_payment_service),
) -> WebhookAck:
    # Signature verification needs the exact bytes Stripe sent
    payload = await request.body()
    await service.handle_webhook(payload, stripe_signature)
    return WebhookAck()
