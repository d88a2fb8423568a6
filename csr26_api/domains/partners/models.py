from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from prisma.models import Partner
from pydantic import BaseModel, EmailStr, Field


class PartnerResponse(BaseModel):
    id: str
    name: str
    email: str
    contactPerson: Optional[str] = None
    commissionRate: Decimal
    active: bool
    createdAt: Optional[datetime] = None
    merchantCount: Optional[int] = None

    @classmethod
    def from_prisma(
        cls, partner: Partner, merchant_count: Optional[int] = None
    ) -> "PartnerResponse":
        return cls(
            id=partner.id,
            name=partner.name,
            email=partner.email,
            contactPerson=partner.contactPerson,
            commissionRate=partner.commissionRate,
            active=partner.active,
            createdAt=partner.createdAt,
            merchantCount=merchant_count,
        )


class PartnerIdentity(BaseModel):
    id: str
    name: str
    email: str


class PartnerAuthResponse(BaseModel):
    partner: PartnerIdentity
    token: str


class PartnerMagicLinkRequest(BaseModel):
    email: EmailStr


class PartnerMagicLinkResponse(BaseModel):
    message: str
    magicLinkUrl: Optional[str] = None


class PartnerMerchantOverview(BaseModel):
    id: str
    name: str
    email: str
    multiplier: int
    currentBalance: Decimal
    transactionCount: int


class PartnerMerchantDetail(PartnerMerchantOverview):
    monthlyBilling: bool
    skuCount: int
    totalRevenue: Decimal
    totalImpactKg: Decimal
    createdAt: datetime


class PartnerStats(BaseModel):
    totalMerchants: int
    totalTransactions: int
    totalRevenue: Decimal
    totalImpactKg: Decimal
    monthlyTransactions: int
    monthlyRevenue: Decimal
    monthlyImpactKg: Decimal


class PartnerDashboard(BaseModel):
    partner: PartnerResponse
    merchants: List[PartnerMerchantOverview]
    stats: PartnerStats


class ReportPeriod(BaseModel):
    year: int
    month: int
    startDate: datetime
    endDate: datetime


class ReportBucket(BaseModel):
    count: int = 0
    revenue: Decimal = Decimal(0)
    impactKg: Decimal = Decimal(0)


class MerchantReportBucket(ReportBucket):
    id: str
    name: str


class PartnerReportTotals(BaseModel):
    transactions: int
    revenue: Decimal
    impactKg: Decimal
    estimatedCommission: Decimal


class PartnerSummaryReport(BaseModel):
    period: ReportPeriod
    totals: PartnerReportTotals
    byMerchant: List[MerchantReportBucket]
    byPaymentMode: Dict[str, ReportBucket]


class PartnerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    contactPerson: Optional[str] = None
    commissionRate: Decimal = Field(Decimal(0), ge=0, le=100)


class PartnerUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    contactPerson: Optional[str] = None
    commissionRate: Optional[Decimal] = Field(None, ge=0, le=100)
    active: Optional[bool] = None
