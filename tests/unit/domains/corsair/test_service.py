"""
Tests for Corsair Connect exports in csr26_api/domains/corsair/service.py
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest
from prisma.enums import UserStatus

from csr26_api.domains.corsair.service import (
    CSV_HEADERS,
    CorsairExportService,
    build_export_record,
    convert_to_csv,
    generate_corsair_id,
    to_base36,
)
from tests.fixtures.model_fixtures import make_transaction, make_user


def certified_user(**overrides) -> Mock:
    values = {
        "status": UserStatus.CERTIFIED,
        "firstName": "Mario",
        "lastName": "Rossi, Jr.",
        "walletBalance": Decimal("12.5"),
        "walletImpactKg": Decimal("113.63636"),
        "maturedImpactKg": Decimal("5.68182"),
        "pendingImpactKg": Decimal("107.95454"),
        "transactions": [
            make_transaction(
                merchantId="m1",
                partnerId="p1",
                createdAt=datetime(2026, 1, 5, tzinfo=timezone.utc),
            ),
            make_transaction(merchantId="m2", createdAt=datetime(2026, 2, 1, tzinfo=timezone.utc)),
            make_transaction(merchantId="m1", createdAt=datetime(2026, 3, 9, tzinfo=timezone.utc)),
        ],
    }
    values.update(overrides)
    return make_user(**values)


@pytest.fixture
def service(mock_prisma: Mock) -> CorsairExportService:
    return CorsairExportService(mock_prisma)


class TestCorsairIds:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_generated_format(self):
        assert re.fullmatch(r"CSR26-[0-9A-Z]+-[0-9A-Z]{6}", generate_corsair_id())


class TestExportRecord:
    def test_attribution_and_dates(self):
        record = build_export_record(certified_user(), "CSR26-ABC-123456", "2026-03-10")

        assert record.transactionCount == 3
        assert record.firstTransactionDate == "2026-01-05"
        assert record.lastTransactionDate == "2026-03-09"
        assert record.attributionIds.merchantIds == ["m1", "m2"]
        assert record.attributionIds.partnerIds == ["p1"]

    def test_csv_layout(self):
        record = build_export_record(certified_user(), "CSR26-ABC-123456", "2026-03-10")

        lines = convert_to_csv([record]).split("\n")

        assert lines[0] == ",".join(CSV_HEADERS)
        assert len(lines) == 2
        assert '"Rossi, Jr."' in lines[1]
        assert ",113.6364,5.6818,107.9545,12.50,2026-03-10,3," in lines[1]
        assert lines[1].endswith(",m1;m2,p1")

    def test_empty_csv(self):
        assert convert_to_csv([]) == ""


class TestExportUser:
    @pytest.mark.asyncio
    async def test_exports_certified_user(self, service: CorsairExportService, mock_prisma: Mock):
        mock_prisma.user.find_unique.return_value = certified_user()

        record = await service.export_user("test-user-id-123")

        assert record is not None
        data = mock_prisma.user.update.call_args[1]["data"]
        assert data == {"corsairId": record.corsairId, "corsairExported": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user",
        [
            None,
            make_user(status=UserStatus.ACCUMULATION),
            make_user(
                status=UserStatus.CERTIFIED, corsairExported=True, corsairId="CSR26-OLD-AAAAAA"
            ),
        ],
    )
    async def test_skips(self, service: CorsairExportService, mock_prisma: Mock, user):
        mock_prisma.user.find_unique.return_value = user

        assert await service.export_user("test-user-id-123") is None
        mock_prisma.user.update.assert_not_called()


class TestBatchExports:
    @pytest.mark.asyncio
    async def test_pending_marks_each_user(
        self, service: CorsairExportService, mock_prisma: Mock
    ):
        mock_prisma.user.find_many.return_value = [
            certified_user(id="u1", corsairId="CSR26-KEEP-AAAAAA"),
            certified_user(id="u2"),
        ]

        result = await service.export_pending_certified_users()

        assert result.recordCount == 2
        assert result.records[0].corsairId == "CSR26-KEEP-AAAAAA"
        assert mock_prisma.user.update.await_count == 2
        where = mock_prisma.user.find_many.call_args[1]["where"]
        assert where == {"status": UserStatus.CERTIFIED, "corsairExported": False}

    @pytest.mark.asyncio
    async def test_all_only_marks_unexported(
        self, service: CorsairExportService, mock_prisma: Mock
    ):
        mock_prisma.user.find_many.return_value = [
            certified_user(id="u1", corsairExported=True, corsairId="CSR26-OLD-AAAAAA"),
            certified_user(id="u2"),
        ]

        result = await service.export_all_certified_users()

        assert result.recordCount == 2
        assert result.records[0].certificationDate == "2026-01-15"
        mock_prisma.user.update.assert_awaited_once()
        assert mock_prisma.user.update.call_args[1]["where"] == {"id": "u2"}

    @pytest.mark.asyncio
    async def test_stats(self, service: CorsairExportService, mock_prisma: Mock):
        mock_prisma.user.count.side_effect = [7, 4]

        stats = await service.get_export_stats()

        assert stats.pendingExport == 3
        assert stats.threshold == Decimal("10")
