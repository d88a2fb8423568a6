"""
Tests for Stripe payment handling in csr26_api/domains/payments/service.py

The gateway is mocked; no request ever reaches Stripe.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest
import stripe
from fastapi import HTTPException
from prisma.enums import PaymentMode, PaymentStatus

from csr26_api.domains.payments.gateway import StripeGateway, to_cents
from csr26_api.domains.payments.models import CreatePaymentIntentRequest
from csr26_api.domains.payments.service import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    PaymentService,
)
from tests.fixtures.model_fixtures import make_transaction

COMPLETE = "csr26_api.domains.payments.service.complete_pending_transaction"


@pytest.fixture
def gateway() -> Mock:
    gateway = Mock(spec=StripeGateway)
    gateway.is_configured = True
    gateway.webhook_configured = True
    gateway.create_payment_intent = AsyncMock(
        return_value=Mock(id="pi_123", client_secret="pi_123_secret_abc")
    )
    gateway.retrieve_payment_intent = AsyncMock()
    return gateway


@pytest.fixture
def service(mock_prisma: Mock, gateway: Mock) -> PaymentService:
    return PaymentService(mock_prisma, gateway)


def stripe_event(event_type: str, intent_id: str = "pi_123") -> dict:
    return {"type": event_type, "data": {"object": {"id": intent_id}}}


def test_to_cents():
    assert to_cents(Decimal("10")) == 1000
    assert to_cents(Decimal("4.995")) == 500


class TestCreateIntent:
    @pytest.mark.asyncio
    async def test_not_configured(self, service: PaymentService, gateway: Mock, mock_user: Mock):
        gateway.is_configured = False

        with pytest.raises(HTTPException) as exc_info:
            await service.create_intent(
                CreatePaymentIntentRequest(amount=Decimal("10"), email=mock_user.email),
                mock_user,
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Stripe not configured"
        gateway.create_payment_intent.assert_not_called()

    @pytest.mark.asyncio
    async def test_records_pending_transaction(
        self, service: PaymentService, mock_prisma: Mock, gateway: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.create.return_value = make_transaction(
            paymentStatus=PaymentStatus.PENDING
        )

        response = await service.create_intent(
            CreatePaymentIntentRequest(amount=Decimal("10"), email=mock_user.email),
            mock_user,
        )

        assert response.clientSecret == "pi_123_secret_abc"
        assert response.paymentIntentId == "pi_123"
        assert response.transactionId == "test-transaction-id-123"

        metadata = gateway.create_payment_intent.call_args[1]["metadata"]
        assert metadata["userId"] == mock_user.id
        assert metadata["impactKg"] == "90.9091"

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["paymentMode"] == PaymentMode.PAY
        assert data["paymentStatus"] == PaymentStatus.PENDING
        assert data["stripePaymentId"] == "pi_123"
        assert data["immediateImpactKg"] == Decimal("4.5455")


class TestResumePayment:
    @pytest.mark.asyncio
    async def test_reuses_open_intent(
        self, service: PaymentService, mock_prisma: Mock, gateway: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.find_unique.return_value = make_transaction(
            paymentMode=PaymentMode.PAY,
            paymentStatus=PaymentStatus.PENDING,
            stripePaymentId="pi_old",
        )
        gateway.retrieve_payment_intent.return_value = Mock(
            id="pi_old", client_secret="pi_old_secret", status="requires_payment_method"
        )

        response = await service.resume_payment("test-transaction-id-123", mock_user)

        assert response.paymentIntentId == "pi_old"
        gateway.create_payment_intent.assert_not_called()
        mock_prisma.transaction.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_replaces_cancelled_intent(
        self, service: PaymentService, mock_prisma: Mock, gateway: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.find_unique.return_value = make_transaction(
            paymentMode=PaymentMode.PAY,
            paymentStatus=PaymentStatus.PENDING,
            stripePaymentId="pi_old",
        )
        gateway.retrieve_payment_intent.return_value = Mock(
            id="pi_old", client_secret="x", status="canceled"
        )

        response = await service.resume_payment("test-transaction-id-123", mock_user)

        assert response.paymentIntentId == "pi_123"
        mock_prisma.transaction.update.assert_awaited_once_with(
            where={"id": "test-transaction-id-123"}, data={"stripePaymentId": "pi_123"}
        )

    @pytest.mark.asyncio
    async def test_completed_transaction_rejected(
        self, service: PaymentService, mock_prisma: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.find_unique.return_value = make_transaction(
            paymentMode=PaymentMode.PAY
        )

        with pytest.raises(HTTPException) as exc_info:
            await service.resume_payment("test-transaction-id-123", mock_user)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_other_users_transaction(
        self, service: PaymentService, mock_prisma: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.find_unique.return_value = make_transaction(userId="other")

        with pytest.raises(HTTPException) as exc_info:
            await service.resume_payment("test-transaction-id-123", mock_user)

        assert exc_info.value.status_code == 404


class TestHandleWebhook:
    @pytest.mark.asyncio
    async def test_not_configured(self, service: PaymentService, gateway: Mock):
        gateway.webhook_configured = False

        with pytest.raises(HTTPException) as exc_info:
            await service.handle_webhook(b"{}", "sig")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Webhook not configured"

    @pytest.mark.asyncio
    async def test_bad_signature(self, service: PaymentService, gateway: Mock):
        gateway.construct_event.side_effect = stripe.SignatureVerificationError(
            "No signatures found", "sig"
        )

        with pytest.raises(HTTPException) as exc_info:
            await service.handle_webhook(b"{}", "sig")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Webhook Error"

    @pytest.mark.asyncio
    async def test_verified_event_processed(
        self, service: PaymentService, mock_prisma: Mock, gateway: Mock
    ):
        gateway.construct_event.return_value = stripe_event(PAYMENT_FAILED)

        await service.handle_webhook(b"{}", "sig")

        gateway.construct_event.assert_called_once_with(b"{}", "sig")
        mock_prisma.transaction.update_many.assert_awaited_once()


class TestProcessEvent:
    @pytest.mark.asyncio
    async def test_succeeded_completes_transaction(
        self, service: PaymentService, mock_prisma: Mock
    ):
        pending = make_transaction(paymentStatus=PaymentStatus.PENDING)
        mock_prisma.transaction.find_first.return_value = pending

        with patch(COMPLETE, new_callable=AsyncMock) as mock_complete:
            await service.process_event(stripe_event(PAYMENT_SUCCEEDED))

        mock_prisma.transaction.find_first.assert_awaited_once_with(
            where={"stripePaymentId": "pi_123"}
        )
        mock_complete.assert_awaited_once_with(mock_prisma, pending)

    @pytest.mark.asyncio
    async def test_succeeded_unknown_intent_ignored(self, service: PaymentService):
        with patch(COMPLETE, new_callable=AsyncMock) as mock_complete:
            await service.process_event(stripe_event(PAYMENT_SUCCEEDED, "pi_unknown"))

        mock_complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_only_touches_pending(
        self, service: PaymentService, mock_prisma: Mock
    ):
        await service.process_event(stripe_event(PAYMENT_FAILED))

        mock_prisma.transaction.update_many.assert_awaited_once_with(
            where={"stripePaymentId": "pi_123", "paymentStatus": PaymentStatus.PENDING},
            data={"paymentStatus": PaymentStatus.FAILED},
        )

    @pytest.mark.asyncio
    async def test_unhandled_event_type(self, service: PaymentService, mock_prisma: Mock):
        await service.process_event(stripe_event("charge.refunded"))

        mock_prisma.transaction.find_first.assert_not_called()
        mock_prisma.transaction.update_many.assert_not_called()
