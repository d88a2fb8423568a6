from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from prisma.enums import GiftCodeStatus
from prisma.models import GiftCode
from pydantic import BaseModel, Field


class GiftCodeSkuSummary(BaseModel):
    code: str
    name: str
    price: Decimal


class GiftCodeResponse(BaseModel):
    code: str
    skuCode: str
    status: GiftCodeStatus
    usedByUserId: Optional[str] = None
    usedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    sku: Optional[GiftCodeSkuSummary] = None

    @classmethod
    def from_prisma(cls, gift_code: GiftCode) -> "GiftCodeResponse":
        sku = getattr(gift_code, "sku", None)
        return cls(
            code=gift_code.code,
            skuCode=gift_code.skuCode,
            status=gift_code.status,
            usedByUserId=gift_code.usedByUserId,
            usedAt=gift_code.usedAt,
            createdAt=gift_code.createdAt,
            sku=(
                GiftCodeSkuSummary(code=sku.code, name=sku.name, price=sku.price)
                if sku
                else None
            ),
        )


class GiftCodeListResponse(BaseModel):
    giftCodes: List[GiftCodeResponse]
    total: int


class ValidateGiftCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    skuCode: str = Field(..., min_length=1)


class ValidateGiftCodeResponse(BaseModel):
    valid: bool
    message: str
    amount: Optional[Decimal] = None
    impactKg: Optional[Decimal] = None
    impactDisplay: Optional[str] = None


class BatchUploadRequest(BaseModel):
    skuCode: str = Field(..., min_length=1)
    codes: List[str] = Field(..., min_length=1)


class BatchUploadResponse(BaseModel):
    created: int
    skipped: int
