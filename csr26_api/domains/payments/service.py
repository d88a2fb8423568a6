import logging
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from prisma.enums import PaymentMode, PaymentStatus
from prisma.models import User

from prisma import Prisma
from csr26_api.domains.auth.service import get_or_create_user
from csr26_api.domains.impact.calculations import (
    calculate_impact,
    calculate_maturation_breakdown,
    resolve_price_per_kg,
)
from csr26_api.domains.payments.gateway import RESUMABLE_STATUSES, StripeGateway
from csr26_api.domains.payments.models import (
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
)
from csr26_api.domains.settings.service import (
    get_certification_threshold,
    get_price_per_kg,
)
from csr26_api.domains.transactions.service import complete_pending_transaction
from csr26_api.shared.exceptions import (
    IntegrationNotConfiguredError,
    InvalidDataError,
    SkuNotFoundError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class PaymentService:
    """Card payments for PAY contributions, settled through Stripe webhooks."""

    def __init__(self, db: Prisma, gateway: StripeGateway):
        self.db = db
        self.gateway = gateway

    def _require_stripe(self) -> None:
        if not self.gateway.is_configured:
            raise IntegrationNotConfiguredError("Stripe not configured")

    async def create_intent(
        self, request: CreatePaymentIntentRequest, user: Optional[User] = None
    ) -> PaymentIntentResponse:
        """
        Open a PaymentIntent and record the matching PENDING transaction.

        The wallet is only credited once the webhook confirms the payment.
        """
        self._require_stripe()
        if user is None:
            user = await get_or_create_user(self.db, request.email)

        merchant_id = None
        merchant_price = None
        partner_id = None
        if request.skuCode:
            sku = await self.db.sku.find_unique(
                where={"code": request.skuCode}, include={"merchant": True}
            )
            if not sku or not sku.active:
                raise SkuNotFoundError()
            if sku.merchant:
                merchant_id = sku.merchant.id
                merchant_price = sku.merchant.pricePerKg
                partner_id = sku.merchant.partnerId

        impact = calculate_impact(
            request.amount,
            resolve_price_per_kg(merchant_price, await get_price_per_kg(self.db)),
            await get_certification_threshold(self.db),
        )
        intent = await self.gateway.create_payment_intent(
            request.amount,
            request.email,
            metadata={
                "userId": user.id,
                "skuCode": request.skuCode or "",
                "impactKg": str(impact.impactKg),
                "impactDisplay": impact.displayValue,
            },
        )

        maturation = calculate_maturation_breakdown(
            impact.impactKg, datetime.now(timezone.utc)
        )
        transaction = await self.db.transaction.create(
            data={
                "userId": user.id,
                "skuCode": request.skuCode,
                "amount": request.amount,
                "impactKg": impact.impactKg,
                "paymentMode": PaymentMode.PAY,
                "paymentStatus": PaymentStatus.PENDING,
                "stripePaymentId": intent.id,
                "merchantId": merchant_id,
                "partnerId": partner_id,
                **maturation.as_transaction_data(),
            }
        )
        return PaymentIntentResponse(
            clientSecret=intent.client_secret,
            paymentIntentId=intent.id,
            transactionId=transaction.id,
        )

    async def resume_payment(self, transaction_id: str, user: User) -> PaymentIntentResponse:
        """
        Client secret for finishing an abandoned card payment.

        The existing PaymentIntent is reused while Stripe still accepts payment
        on it; otherwise a new one is opened and linked to the transaction.
        """
        self._require_stripe()
        transaction = await self.db.transaction.find_unique(where={"id": transaction_id})
        if not transaction or transaction.userId != user.id:
            raise TransactionNotFoundError()
        if (
            transaction.paymentMode != PaymentMode.PAY
            or transaction.paymentStatus != PaymentStatus.PENDING
        ):
            raise InvalidDataError("Only pending card payments can be resumed")

        if transaction.stripePaymentId:
            intent = await self.gateway.retrieve_payment_intent(transaction.stripePaymentId)
            if intent.status in RESUMABLE_STATUSES:
                return PaymentIntentResponse(
                    clientSecret=intent.client_secret,
                    paymentIntentId=intent.id,
                    transactionId=transaction.id,
                )

        intent = await self.gateway.create_payment_intent(
            transaction.amount,
            user.email,
            metadata={
                "userId": user.id,
                "skuCode": transaction.skuCode or "",
                "impactKg": str(transaction.impactKg),
                "transactionId": transaction.id,
            },
        )
        await self.db.transaction.update(
            where={"id": transaction.id}, data={"stripePaymentId": intent.id}
        )
        logger.info(
            "Transaction %s relinked to payment intent %s", transaction.id, intent.id
        )
        return PaymentIntentResponse(
            clientSecret=intent.client_secret,
            paymentIntentId=intent.id,
            transactionId=transaction.id,
        )

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> None:
        if not self.gateway.webhook_configured:
            logger.error("Stripe webhook received but not configured")
            raise IntegrationNotConfiguredError("Webhook not configured")
        try:
            event = self.gateway.construct_event(payload, signature or "")
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise InvalidDataError("Webhook Error")
        await self.process_event(event)

    async def process_event(self, event: Any) -> None:
        """
        Apply a verified Stripe event. Redelivered events are harmless: only a
        PENDING transaction is ever completed or failed.
        """
        event_type = event["type"]
        intent_id = event["data"]["object"]["id"]

        if event_type == PAYMENT_SUCCEEDED:
            logger.info("Payment succeeded: %s", intent_id)
            transaction = await self.db.transaction.find_first(
                where={"stripePaymentId": intent_id}
            )
            if not transaction:
                logger.warning("No transaction for payment intent %s", intent_id)
                return
            await complete_pending_transaction(self.db, transaction)
        elif event_type == PAYMENT_FAILED:
            logger.info("Payment failed: %s", intent_id)
            await self.db.transaction.update_many(
                where={
                    "stripePaymentId": intent_id,
                    "paymentStatus": PaymentStatus.PENDING,
                },
                data={"paymentStatus": PaymentStatus.FAILED},
            )
        else:
            logger.info("Unhandled Stripe event type: %s", event_type)
