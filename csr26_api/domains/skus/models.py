from datetime import datetime
from decimal import Decimal
from typing import Optional

from prisma.enums import PaymentMode
from prisma.models import Sku
from pydantic import BaseModel, Field


class SkuMerchantSummary(BaseModel):
    id: str
    name: str
    multiplier: int


class SkuResponse(BaseModel):
    """Response model for SKU data"""

    code: str
    name: str
    description: Optional[str] = None
    paymentMode: PaymentMode
    price: Decimal
    weightGrams: Optional[int] = None
    multiplier: int
    paymentRequired: bool
    validationRequired: bool
    active: bool
    merchantId: Optional[str] = None
    merchant: Optional[SkuMerchantSummary] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_prisma(cls, sku: Sku) -> "SkuResponse":
        merchant = getattr(sku, "merchant", None)
        return cls(
            code=sku.code,
            name=sku.name,
            description=sku.description,
            paymentMode=sku.paymentMode,
            price=sku.price,
            weightGrams=sku.weightGrams,
            multiplier=sku.multiplier,
            paymentRequired=sku.paymentRequired,
            validationRequired=sku.validationRequired,
            active=sku.active,
            merchantId=sku.merchantId,
            merchant=(
                SkuMerchantSummary(
                    id=merchant.id, name=merchant.name, multiplier=merchant.multiplier
                )
                if merchant
                else None
            ),
            createdAt=sku.createdAt,
            updatedAt=sku.updatedAt,
        )


class SkuCreateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    paymentMode: PaymentMode
    price: Decimal = Field(Decimal(0), ge=0)
    weightGrams: Optional[int] = Field(None, ge=0)
    multiplier: int = Field(1, ge=1)
    paymentRequired: bool = False
    validationRequired: bool = False
    merchantId: Optional[str] = None


class SkuUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    paymentMode: Optional[PaymentMode] = None
    price: Optional[Decimal] = Field(None, ge=0)
    weightGrams: Optional[int] = Field(None, ge=0)
    multiplier: Optional[int] = Field(None, ge=1)
    paymentRequired: Optional[bool] = None
    validationRequired: Optional[bool] = None
    active: Optional[bool] = None
    merchantId: Optional[str] = None
