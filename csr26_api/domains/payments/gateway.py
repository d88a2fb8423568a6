import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from csr26_api.core.settings import settings

logger = logging.getLogger(__name__)

CURRENCY = "eur"

# PaymentIntent states in which the customer can still complete payment
RESUMABLE_STATUSES = {"requires_payment_method", "requires_confirmation", "requires_action"}


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeGateway:
    """
    Thin async wrapper over the Stripe SDK.

    The SDK is synchronous, so calls run in the threadpool.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.secret_key and self.webhook_secret)

    async def create_payment_intent(
        self, amount: Decimal, email: str, metadata: dict[str, str]
    ) -> stripe.PaymentIntent:
        intent = await run_in_threadpool(
            stripe.PaymentIntent.create,
            api_key=self.secret_key,
            amount=to_cents(amount),
            currency=CURRENCY,
            metadata=metadata,
            receipt_email=email,
        )
        logger.info("Created payment intent %s for %s", intent.id, email)
        return intent

    async def retrieve_payment_intent(self, intent_id: str) -> stripe.PaymentIntent:
        return await run_in_threadpool(
            stripe.PaymentIntent.retrieve, intent_id, api_key=self.secret_key
        )

    def construct_event(self, payload: bytes, signature: str) -> Any:
        """
        Verify a webhook payload against its ``Stripe-Signature`` header.

        Raises:
            stripe.SignatureVerificationError: signature mismatch
            ValueError: payload is not valid JSON
        """
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


def get_stripe_gateway() -> StripeGateway:
    return StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)
