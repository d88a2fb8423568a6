import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prisma.enums import GiftCodeStatus, PaymentMode
from prisma.models import GiftCode
from prisma.types import GiftCodeWhereInput

from prisma import Prisma
from csr26_api.domains.gift_codes.exceptions import (
    DuplicateGiftCodesError,
    GiftCodeNotFoundError,
    GiftCodeStateError,
    InvalidGiftCodeError,
    NotGiftCardSkuError,
)
from csr26_api.domains.gift_codes.models import (
    BatchUploadResponse,
    GiftCodeListResponse,
    GiftCodeResponse,
    ValidateGiftCodeResponse,
)
from csr26_api.domains.impact.calculations import calculate_impact
from csr26_api.domains.settings.service import (
    get_certification_threshold,
    get_price_per_kg,
)
from csr26_api.shared.exceptions import SkuNotFoundError

logger = logging.getLogger(__name__)


def _rejection_message(
    gift_code: Optional[GiftCode], sku_code: str
) -> Optional[str]:
    if gift_code is None:
        return "Invalid gift code"
    if gift_code.skuCode != sku_code:
        return "Code does not match this product"
    if gift_code.status == GiftCodeStatus.USED:
        return "Code already used"
    if gift_code.status == GiftCodeStatus.DEACTIVATED:
        return "Code deactivated"
    return None


class GiftCodeService:
    """Redemption and admin lifecycle of physical gift card codes."""

    def __init__(self, db: Prisma):
        self.db = db

    async def validate(self, code: str, sku_code: str) -> ValidateGiftCodeResponse:
        """
        Check a code for the landing page without redeeming it.

        Invalid codes are reported in the response body, not as errors.
        """
        gift_code = await self.db.giftcode.find_unique(
            where={"code": code}, include={"sku": True}
        )
        rejection = _rejection_message(gift_code, sku_code)
        if rejection or gift_code is None or gift_code.sku is None:
            return ValidateGiftCodeResponse(
                valid=False, message=rejection or "Invalid gift code"
            )

        amount = Decimal(gift_code.sku.price)
        impact = calculate_impact(
            amount,
            await get_price_per_kg(self.db),
            await get_certification_threshold(self.db),
        )
        return ValidateGiftCodeResponse(
            valid=True,
            amount=amount,
            impactKg=impact.impactKg,
            impactDisplay=impact.displayValue,
            message=f"Code valid for €{amount:.2f} ({impact.displayValue} plastic removal)",
        )

    async def get_redeemable(self, code: str, sku_code: str) -> GiftCode:
        """The UNUSED code matching ``sku_code``; raises otherwise."""
        gift_code = await self.db.giftcode.find_unique(
            where={"code": code}, include={"sku": True}
        )
        rejection = _rejection_message(gift_code, sku_code)
        if rejection or gift_code is None:
            raise InvalidGiftCodeError(rejection)
        return gift_code

    async def redeem(self, code: str, sku_code: str, user_id: str) -> None:
        """
        Claim an UNUSED code for ``user_id``.

        The status check and the USED write are one conditional update, so a
        code is redeemed at most once even under concurrent requests. Run it
        with a transaction client so the claim rolls back with the credit.
        """
        claimed = await self.db.giftcode.update_many(
            where={"code": code, "skuCode": sku_code, "status": GiftCodeStatus.UNUSED},
            data={
                "status": GiftCodeStatus.USED,
                "usedAt": datetime.now(timezone.utc),
                "usedByUserId": user_id,
            },
        )
        if claimed == 0:
            raise InvalidGiftCodeError("Code already used")
        logger.info("Gift code %s redeemed by user %s", code, user_id)

    async def list_codes(
        self,
        status: Optional[GiftCodeStatus] = None,
        sku_code: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> GiftCodeListResponse:
        where: GiftCodeWhereInput = {}
        if status:
            where["status"] = status
        if sku_code:
            where["skuCode"] = sku_code

        gift_codes = await self.db.giftcode.find_many(
            where=where,
            include={"sku": True},
            order={"createdAt": "desc"},
            take=limit,
            skip=offset,
        )
        total = await self.db.giftcode.count(where=where)
        return GiftCodeListResponse(
            giftCodes=[GiftCodeResponse.from_prisma(g) for g in gift_codes],
            total=total,
        )

    async def batch_upload(self, sku_code: str, codes: list[str]) -> BatchUploadResponse:
        """
        Create codes for a GIFT_CARD SKU. Codes that already exist are
        skipped; a batch made only of existing codes is rejected.
        """
        sku = await self.db.sku.find_unique(where={"code": sku_code})
        if not sku:
            raise SkuNotFoundError()
        if sku.paymentMode != PaymentMode.GIFT_CARD:
            raise NotGiftCardSkuError()

        requested = list(dict.fromkeys(c.strip() for c in codes if c.strip()))
        existing = await self.db.giftcode.find_many(where={"code": {"in": requested}})
        existing_codes = {g.code for g in existing}
        new_codes = [c for c in requested if c not in existing_codes]
        if not new_codes:
            raise DuplicateGiftCodesError()

        await self.db.giftcode.create_many(
            data=[{"code": c, "skuCode": sku_code} for c in new_codes],
            skip_duplicates=True,
        )
        logger.info("Uploaded %d gift codes for SKU %s", len(new_codes), sku_code)
        return BatchUploadResponse(
            created=len(new_codes), skipped=len(codes) - len(new_codes)
        )

    async def deactivate(self, code: str) -> GiftCode:
        gift_code = await self.db.giftcode.find_unique(where={"code": code})
        if not gift_code:
            raise GiftCodeNotFoundError()
        if gift_code.status == GiftCodeStatus.USED:
            raise GiftCodeStateError("Cannot deactivate an already used code")
        updated = await self.db.giftcode.update(
            where={"code": code}, data={"status": GiftCodeStatus.DEACTIVATED}
        )
        if updated is None:
            raise GiftCodeNotFoundError()
        return updated

    async def activate(self, code: str) -> GiftCode:
        gift_code = await self.db.giftcode.find_unique(where={"code": code})
        if not gift_code:
            raise GiftCodeNotFoundError()
        if gift_code.status == GiftCodeStatus.USED:
            raise GiftCodeStateError("Cannot activate an already used code")
        if gift_code.status == GiftCodeStatus.UNUSED:
            raise GiftCodeStateError("Code is already active")
        updated = await self.db.giftcode.update(
            where={"code": code}, data={"status": GiftCodeStatus.UNUSED}
        )
        if updated is None:
            raise GiftCodeNotFoundError()
        return updated
