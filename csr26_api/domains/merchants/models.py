from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from prisma.models import Merchant
from pydantic import BaseModel, EmailStr, Field

from csr26_api.domains.billing.models import InvoiceResponse


class MerchantResponse(BaseModel):
    id: str
    name: str
    email: str
    multiplier: int
    pricePerKg: Optional[Decimal] = None
    monthlyBilling: bool
    currentBalance: Decimal
    lastBillingDate: Optional[datetime] = None
    stripeAccountId: Optional[str] = None
    partnerId: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
    transactionCount: Optional[int] = None
    skuCount: Optional[int] = None

    @classmethod
    def from_prisma(
        cls,
        merchant: Merchant,
        transaction_count: Optional[int] = None,
        sku_count: Optional[int] = None,
    ) -> "MerchantResponse":
        return cls(
            id=merchant.id,
            name=merchant.name,
            email=merchant.email,
            multiplier=merchant.multiplier,
            pricePerKg=merchant.pricePerKg,
            monthlyBilling=merchant.monthlyBilling,
            currentBalance=merchant.currentBalance,
            lastBillingDate=merchant.lastBillingDate,
            stripeAccountId=merchant.stripeAccountId,
            partnerId=merchant.partnerId,
            createdAt=merchant.createdAt,
            updatedAt=merchant.updatedAt,
            transactionCount=transaction_count,
            skuCount=sku_count,
        )


class MerchantSummary(BaseModel):
    """Dashboard header figures for one merchant."""

    id: str
    name: str
    multiplier: int
    transactionCount: int
    totalImpactKg: Decimal
    currentBalance: Decimal
    nextBillingDate: Optional[datetime] = None


class MerchantBillingInfo(BaseModel):
    currentBalance: Decimal
    pendingTransactions: int
    nextBillingDate: datetime
    lastBillingDate: Optional[datetime] = None
    invoices: List[InvoiceResponse]


class MerchantCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    multiplier: int = Field(1, ge=1)
    pricePerKg: Optional[Decimal] = Field(None, gt=0)
    monthlyBilling: bool = True
    partnerId: Optional[str] = None


class MerchantUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    multiplier: Optional[int] = Field(None, ge=1)
    pricePerKg: Optional[Decimal] = Field(None, gt=0)
    monthlyBilling: Optional[bool] = None
    stripeAccountId: Optional[str] = None
    partnerId: Optional[str] = None
