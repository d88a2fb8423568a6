"""
Tests for the SKU catalogue in csr26_api/domains/skus/service.py
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi import HTTPException
from prisma.enums import PaymentMode

from csr26_api.domains.skus.models import SkuCreateRequest, SkuResponse, SkuUpdateRequest
from csr26_api.domains.skus.service import (
    create_sku,
    deactivate_sku,
    get_active_sku,
    update_sku,
)
from tests.fixtures.model_fixtures import make_merchant, make_sku


class TestGetActiveSku:
    @pytest.mark.asyncio
    async def test_found_with_merchant(self, mock_prisma: Mock):
        mock_prisma.sku.find_first.return_value = make_sku(merchant=make_merchant())

        sku = await get_active_sku(mock_prisma, "FUNDED-01")

        assert SkuResponse.from_prisma(sku).merchant.name == "Conad"
        mock_prisma.sku.find_first.assert_awaited_once_with(
            where={"code": "FUNDED-01", "active": True}, include={"merchant": True}
        )

    @pytest.mark.asyncio
    async def test_inactive_hidden(self, mock_prisma: Mock):
        with pytest.raises(HTTPException) as exc_info:
            await get_active_sku(mock_prisma, "FUNDED-01")

        assert exc_info.value.status_code == 404


class TestCatalogueAdmin:
    @pytest.mark.asyncio
    async def test_create_drops_unset_optionals(self, mock_prisma: Mock):
        mock_prisma.sku.create.return_value = make_sku(code="PAY-01")

        await create_sku(
            mock_prisma,
            SkuCreateRequest(
                code="PAY-01", name="Pay", paymentMode=PaymentMode.PAY, price=Decimal("10")
            ),
        )

        data = mock_prisma.sku.create.call_args[1]["data"]
        assert "merchantId" not in data
        assert "weightGrams" not in data
        assert data["multiplier"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_code(self, mock_prisma: Mock):
        mock_prisma.sku.find_unique.return_value = make_sku()

        with pytest.raises(HTTPException) as exc_info:
            await create_sku(
                mock_prisma,
                SkuCreateRequest(code="FUNDED-01", name="x", paymentMode=PaymentMode.CLAIM),
            )

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_update_only_sent_fields(self, mock_prisma: Mock):
        mock_prisma.sku.find_unique.return_value = make_sku()
        mock_prisma.sku.update.return_value = make_sku(price=Decimal("7.50"))

        await update_sku(mock_prisma, "FUNDED-01", SkuUpdateRequest(price=Decimal("7.50")))

        mock_prisma.sku.update.assert_awaited_once_with(
            where={"code": "FUNDED-01"}, data={"price": Decimal("7.50")}
        )

    @pytest.mark.asyncio
    async def test_deactivate_is_soft(self, mock_prisma: Mock):
        mock_prisma.sku.find_unique.return_value = make_sku()

        await deactivate_sku(mock_prisma, "FUNDED-01")

        mock_prisma.sku.update.assert_awaited_once_with(
            where={"code": "FUNDED-01"}, data={"active": False}
        )
