from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from csr26_api.domains.partners.models import (
    MerchantReportBucket,
    ReportBucket,
    ReportPeriod,
)


class AdminAccessRequest(BaseModel):
    code: str


class AdminAccessResponse(BaseModel):
    message: str
    role: Optional[str] = None
    valid: Optional[bool] = None


class CorsairExportType(str, Enum):
    pending = "pending"
    all = "all"


class RevenueGroupBy(str, Enum):
    merchant = "merchant"
    partner = "partner"


class SummaryTotals(BaseModel):
    transactions: int
    revenue: Decimal
    impactKg: Decimal


class UserCounts(BaseModel):
    total: int
    new: int
    certified: int


class MonthlySummaryReport(BaseModel):
    period: ReportPeriod
    totals: SummaryTotals
    byPaymentMode: Dict[str, ReportBucket]
    byMerchant: List[MerchantReportBucket]
    users: UserCounts


class DateRange(BaseModel):
    startDate: datetime
    endDate: datetime


class RevenueReport(BaseModel):
    period: DateRange
    groupBy: RevenueGroupBy
    data: List[MerchantReportBucket]
    totals: ReportBucket


class ImpactReport(BaseModel):
    totalTransactions: int
    completedTransactions: int
    totalRevenue: Decimal
    totalImpactKg: Decimal
    maturedImpactKg: Decimal
    pendingImpactKg: Decimal
    equivalentBottles: int


class GrowthPeriod(DateRange):
    days: int


class DailyGrowth(BaseModel):
    date: str
    total: int = 0
    certified: int = 0


class UserGrowthTotals(BaseModel):
    total: int
    certified: int
    accumulation: int


class UserGrowthReport(BaseModel):
    period: GrowthPeriod
    dailyGrowth: List[DailyGrowth]
    totals: UserGrowthTotals
