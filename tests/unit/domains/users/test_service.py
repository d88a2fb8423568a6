"""
Tests for admin user management in csr26_api/domains/users/service.py
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import HTTPException
from prisma.enums import PaymentMode, PaymentStatus, UserStatus

from csr26_api.domains.users.models import SortOrder, UserSortField
from csr26_api.domains.users.service import (
    adjust_wallet,
    csv_filename,
    export_users_csv,
    list_users,
)
from tests.fixtures.model_fixtures import make_user

MODULE = "csr26_api.domains.users.service"


class TestListUsers:
    @pytest.mark.asyncio
    async def test_search_status_and_sort(self, mock_prisma: Mock, mock_user: Mock):
        mock_prisma.user.count.return_value = 1
        mock_prisma.user.find_many.return_value = [mock_user]
        mock_prisma.transaction.count.return_value = 4

        result = await list_users(
            mock_prisma,
            search="test",
            status=UserStatus.ACCUMULATION,
            sort_by=UserSortField.walletBalance,
            sort_order=SortOrder.asc,
            limit=10,
        )

        assert result.total == 1
        assert result.users[0].transactionCount == 4
        kwargs = mock_prisma.user.find_many.call_args[1]
        assert kwargs["order"] == {"walletBalance": "asc"}
        assert kwargs["take"] == 10
        assert kwargs["where"]["status"] == UserStatus.ACCUMULATION
        assert {"email": {"contains": "test", "mode": "insensitive"}} in kwargs["where"]["OR"]


class TestAdjustWallet:
    @pytest.mark.asyncio
    async def test_records_matured_claim(self, mock_prisma: Mock, mock_user: Mock):
        mock_prisma.user.find_unique.return_value = mock_user

        with patch(f"{MODULE}.credit_wallet", new_callable=AsyncMock) as mock_wallet, patch(
            f"{MODULE}.check_threshold_upgrade", new_callable=AsyncMock
        ) as mock_check:
            await adjust_wallet(mock_prisma, mock_user.id, Decimal("5"), "Goodwill credit")

        data = mock_prisma.transaction.create.call_args[1]["data"]
        assert data["paymentMode"] == PaymentMode.CLAIM
        assert data["paymentStatus"] == PaymentStatus.COMPLETED
        assert data["impactKg"] == Decimal("45.4545")
        assert data["immediateImpactKg"] == Decimal("45.4545")
        assert data["midTermMatured"] is True
        assert data["finalMatured"] is True
        assert data["giftCodeUsed"] == "ADMIN_ADJUSTMENT: Goodwill credit"
        mock_wallet.assert_awaited_once_with(
            mock_prisma, mock_user.id, Decimal("5"), Decimal("45.4545"), Decimal("45.4545")
        )
        mock_prisma.tx.assert_called_once()
        mock_check.assert_awaited_once_with(mock_prisma, mock_user.id)

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_prisma: Mock):
        with patch(f"{MODULE}.credit_wallet", new_callable=AsyncMock) as mock_wallet:
            with pytest.raises(HTTPException) as exc_info:
                await adjust_wallet(mock_prisma, "nope", Decimal("5"), "x")

        assert exc_info.value.status_code == 404
        mock_wallet.assert_not_called()


class TestExportCsv:
    @pytest.mark.asyncio
    async def test_quotes_every_field(self, mock_prisma: Mock):
        mock_prisma.user.find_many.return_value = [
            make_user(walletBalance=Decimal("12.5"), corsairExported=True)
        ]
        mock_prisma.transaction.count.return_value = 3

        content = await export_users_csv(mock_prisma, status=UserStatus.ACCUMULATION)

        header, row = content.split("\n")
        assert header.startswith('"ID","Email","First Name"')
        assert row == (
            '"test-user-id-123","test@example.com","Test","User","","","","","","",'
            '"12.50","0.00","ACCUMULATION","3","Yes","2026-01-15T09:00:00+00:00"'
        )
        assert mock_prisma.user.find_many.call_args[1]["where"] == {
            "status": UserStatus.ACCUMULATION
        }

    def test_filename(self):
        assert (
            csv_filename(datetime(2026, 3, 4, tzinfo=timezone.utc))
            == "csr26-users-2026-03-04.csv"
        )
