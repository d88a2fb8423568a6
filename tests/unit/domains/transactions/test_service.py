"""
Tests for contribution recording in csr26_api/domains/transactions/service.py

The wallet credit itself is covered by the impact service tests; here it is
patched so the assertions focus on which side effects each flow triggers.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import HTTPException
from prisma.enums import GiftCodeStatus, PaymentMode, PaymentStatus

from csr26_api.domains.transactions.models import CreateTransactionRequest
from csr26_api.domains.transactions.service import (
    complete_pending_transaction,
    create_transaction,
    get_transaction_for_user,
    update_transaction_status,
)
from tests.fixtures.model_fixtures import (
    make_gift_code,
    make_merchant,
    make_sku,
    make_transaction,
)

MODULE = "csr26_api.domains.transactions.service"


@pytest.fixture
def mock_wallet():
    """Wallet credit, with the post-commit certification check stubbed out."""
    with patch(f"{MODULE}.credit_wallet", new_callable=AsyncMock) as mock_credit, patch(
        f"{MODULE}.check_threshold_upgrade", new_callable=AsyncMock, return_value=False
    ):
        yield mock_credit


class TestCreateTransaction:
    @pytest.mark.asyncio
    async def test_anonymous_requires_email(self, mock_prisma: Mock):
        with pytest.raises(HTTPException) as exc_info:
            await create_transaction(
                mock_prisma, CreateTransactionRequest(paymentMode=PaymentMode.CLAIM)
            )

        assert exc_info.value.status_code == 400
        mock_prisma.transaction.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_payment_mode_required_without_sku(
        self, mock_prisma: Mock, mock_user: Mock
    ):
        with pytest.raises(HTTPException) as exc_info:
            await create_transaction(
                mock_prisma, CreateTransactionRequest(amount=Decimal("5")), mock_user
            )

        assert exc_info.value.detail == "paymentMode is required"

    @pytest.mark.asyncio
    async def test_inactive_sku_rejected(self, mock_prisma: Mock, mock_user: Mock):
        mock_prisma.sku.find_unique.return_value = make_sku(active=False)

        with pytest.raises(HTTPException) as exc_info:
            await create_transaction(
                mock_prisma, CreateTransactionRequest(skuCode="FUNDED-01"), mock_user
            )

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_claim_completes_and_bills_merchant(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        merchant = make_merchant(currentBalance=Decimal("12.50"), partnerId="partner-1")
        mock_prisma.sku.find_unique.return_value = make_sku(merchantId=merchant.id)
        mock_prisma.merchant.find_unique.return_value = merchant
        mock_prisma.transaction.create.return_value = make_transaction()

        created = await create_transaction(
            mock_prisma, CreateTransactionRequest(skuCode="FUNDED-01"), mock_user
        )

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["paymentMode"] == PaymentMode.CLAIM
        assert data["paymentStatus"] == PaymentStatus.COMPLETED
        assert data["amount"] == Decimal("5.00")
        assert data["impactKg"] == Decimal("45.4545")
        assert data["merchantId"] == merchant.id
        assert data["partnerId"] == "partner-1"
        assert data["immediateImpactKg"] == Decimal("2.2727")
        assert created.impact.impactKg == Decimal("45.4545")

        mock_wallet.assert_awaited_once_with(
            mock_prisma, mock_user.id, Decimal("5.00"), Decimal("45.4545"), Decimal("2.2727")
        )
        mock_prisma.merchant.update.assert_awaited_once_with(
            where={"id": merchant.id}, data={"currentBalance": {"increment": Decimal("5.00")}}
        )
        mock_prisma.tx.assert_called_once()

    @pytest.mark.asyncio
    async def test_pay_stays_pending(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        merchant = make_merchant()
        mock_prisma.merchant.find_unique.return_value = merchant
        mock_prisma.transaction.create.return_value = make_transaction(
            paymentMode=PaymentMode.PAY, paymentStatus=PaymentStatus.PENDING
        )

        await create_transaction(
            mock_prisma,
            CreateTransactionRequest(
                paymentMode=PaymentMode.PAY, amount=Decimal("3"), merchantId=merchant.id
            ),
            mock_user,
        )

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["paymentStatus"] == PaymentStatus.PENDING
        mock_wallet.assert_not_called()
        mock_prisma.merchant.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_gift_card_redeems_code_at_sku_value(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        mock_prisma.sku.find_unique.return_value = make_sku(
            code="GC-25EUR", paymentMode=PaymentMode.GIFT_CARD, price=Decimal("25.00")
        )
        mock_prisma.giftcode.find_unique.return_value = make_gift_code()
        mock_prisma.transaction.create.return_value = make_transaction()

        await create_transaction(
            mock_prisma,
            CreateTransactionRequest(
                skuCode="GC-25EUR", giftCode="TEST-GC25-001", amount=Decimal("100")
            ),
            mock_user,
        )

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["amount"] == Decimal("25.00")
        assert data["giftCodeUsed"] == "TEST-GC25-001"
        claim = mock_prisma.giftcode.update_many.call_args[1]
        assert claim["where"] == {
            "code": "TEST-GC25-001",
            "skuCode": "GC-25EUR",
            "status": GiftCodeStatus.UNUSED,
        }
        assert claim["data"]["status"] == GiftCodeStatus.USED
        assert claim["data"]["usedByUserId"] == mock_user.id
        mock_wallet.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gift_code_claimed_concurrently_is_refused(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        mock_prisma.sku.find_unique.return_value = make_sku(
            code="GC-25EUR", paymentMode=PaymentMode.GIFT_CARD, price=Decimal("25.00")
        )
        mock_prisma.giftcode.find_unique.return_value = make_gift_code()
        mock_prisma.giftcode.update_many.return_value = 0

        with pytest.raises(HTTPException) as exc_info:
            await create_transaction(
                mock_prisma,
                CreateTransactionRequest(skuCode="GC-25EUR", giftCode="TEST-GC25-001"),
                mock_user,
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Code already used"
        mock_prisma.transaction.create.assert_not_called()
        mock_wallet.assert_not_called()

    @pytest.mark.asyncio
    async def test_used_gift_code_rejected_before_recording(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        mock_prisma.sku.find_unique.return_value = make_sku(
            code="GC-25EUR", paymentMode=PaymentMode.GIFT_CARD, price=Decimal("25.00")
        )
        mock_prisma.giftcode.find_unique.return_value = make_gift_code(
            status=GiftCodeStatus.USED
        )

        with pytest.raises(HTTPException) as exc_info:
            await create_transaction(
                mock_prisma,
                CreateTransactionRequest(skuCode="GC-25EUR", giftCode="TEST-GC25-001"),
                mock_user,
            )

        assert exc_info.value.detail == "Code already used"
        mock_prisma.transaction.create.assert_not_called()
        mock_wallet.assert_not_called()

    @pytest.mark.asyncio
    async def test_weight_based_claim(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        merchant = make_merchant(multiplier=5)
        mock_prisma.sku.find_unique.return_value = make_sku(
            code="LOT-CONAD-01",
            price=Decimal("0"),
            weightGrams=17,
            multiplier=2,
            merchantId=merchant.id,
        )
        mock_prisma.merchant.find_unique.return_value = merchant
        mock_prisma.transaction.create.return_value = make_transaction()

        await create_transaction(
            mock_prisma, CreateTransactionRequest(skuCode="LOT-CONAD-01"), mock_user
        )

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["weightGrams"] == 17
        assert data["multiplier"] == 2
        assert data["impactKg"] == Decimal("0.0340")

    @pytest.mark.asyncio
    async def test_merchant_price_override(
        self, mock_prisma: Mock, mock_user: Mock, mock_wallet: AsyncMock
    ):
        merchant = make_merchant(pricePerKg=Decimal("0.10"), monthlyBilling=False)
        mock_prisma.merchant.find_unique.return_value = merchant
        mock_prisma.transaction.create.return_value = make_transaction()

        await create_transaction(
            mock_prisma,
            CreateTransactionRequest(
                paymentMode=PaymentMode.ALLOCATION,
                amount=Decimal("10"),
                merchantId=merchant.id,
            ),
            mock_user,
        )

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["impactKg"] == Decimal("100.0000")
        mock_prisma.merchant.update.assert_not_called()


class TestCompletePendingTransaction:
    @pytest.mark.asyncio
    async def test_credits_immediate_tranche_once(
        self, mock_prisma: Mock, mock_wallet: AsyncMock
    ):
        pending = make_transaction(paymentStatus=PaymentStatus.PENDING)
        mock_prisma.transaction.update_many.return_value = 1

        assert await complete_pending_transaction(mock_prisma, pending, "pi_123") is True

        mock_prisma.transaction.update_many.assert_awaited_once_with(
            where={"id": pending.id, "paymentStatus": PaymentStatus.PENDING},
            data={"paymentStatus": PaymentStatus.COMPLETED, "stripePaymentId": "pi_123"},
        )
        mock_wallet.assert_awaited_once_with(
            mock_prisma,
            pending.userId,
            Decimal("10.00"),
            Decimal("90.9091"),
            Decimal("4.5455"),
        )

    @pytest.mark.asyncio
    async def test_already_completed_is_not_credited_again(
        self, mock_prisma: Mock, mock_wallet: AsyncMock
    ):
        mock_prisma.transaction.update_many.return_value = 0

        assert await complete_pending_transaction(mock_prisma, make_transaction()) is False
        mock_wallet.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_credit_rolls_back_status_flip(
        self, mock_prisma: Mock, mock_wallet: AsyncMock
    ):
        mock_wallet.side_effect = ValueError("User test-user-id-123 not found")

        with pytest.raises(ValueError):
            await complete_pending_transaction(
                mock_prisma, make_transaction(paymentStatus=PaymentStatus.PENDING)
            )

        exit_args = mock_prisma.tx.return_value.__aexit__.call_args[0]
        assert exit_args[0] is ValueError


class TestTransactionAccess:
    @pytest.mark.asyncio
    async def test_owner_can_read(self, mock_prisma: Mock, mock_user: Mock):
        transaction = make_transaction(userId=mock_user.id)
        mock_prisma.transaction.find_unique.return_value = transaction

        assert await get_transaction_for_user(mock_prisma, transaction.id, mock_user) is transaction

    @pytest.mark.asyncio
    async def test_other_users_transaction_is_not_found(
        self, mock_prisma: Mock, mock_user: Mock
    ):
        mock_prisma.transaction.find_unique.return_value = make_transaction(userId="someone")

        with pytest.raises(HTTPException) as exc_info:
            await get_transaction_for_user(mock_prisma, "t", mock_user)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_reads_any(self, mock_prisma: Mock, mock_admin_user: Mock):
        transaction = make_transaction(userId="someone")
        mock_prisma.transaction.find_unique.return_value = transaction

        result = await get_transaction_for_user(mock_prisma, "t", mock_admin_user)

        assert result is transaction


class TestUpdateTransactionStatus:
    @pytest.mark.asyncio
    async def test_pending_to_completed_credits_wallet(
        self, mock_prisma: Mock, mock_wallet: AsyncMock
    ):
        pending = make_transaction(paymentStatus=PaymentStatus.PENDING)
        completed = make_transaction(paymentStatus=PaymentStatus.COMPLETED)
        mock_prisma.transaction.find_unique.side_effect = [pending, completed]

        result = await update_transaction_status(
            mock_prisma, pending.id, PaymentStatus.COMPLETED
        )

        assert result is completed
        mock_wallet.assert_awaited_once()
        mock_prisma.transaction.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_changes_do_not_touch_wallet(
        self, mock_prisma: Mock, mock_wallet: AsyncMock
    ):
        pending = make_transaction(paymentStatus=PaymentStatus.PENDING)
        mock_prisma.transaction.find_unique.side_effect = [pending, pending]

        await update_transaction_status(mock_prisma, pending.id, PaymentStatus.FAILED)

        mock_prisma.transaction.update.assert_awaited_once_with(
            where={"id": pending.id}, data={"paymentStatus": PaymentStatus.FAILED}
        )
        mock_wallet.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_prisma: Mock):
        with pytest.raises(HTTPException) as exc_info:
            await update_transaction_status(mock_prisma, "nope", PaymentStatus.FAILED)

        assert exc_info.value.status_code == 404
