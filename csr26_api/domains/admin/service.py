import logging
import secrets
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from prisma.enums import PaymentMode, PaymentStatus, UserRole, UserStatus
from prisma.models import Transaction, User

from prisma import Prisma
from csr26_api.core.settings import settings
from csr26_api.domains.admin.models import (
    AdminAccessResponse,
    DailyGrowth,
    DateRange,
    GrowthPeriod,
    ImpactReport,
    MonthlySummaryReport,
    RevenueGroupBy,
    RevenueReport,
    SummaryTotals,
    UserCounts,
    UserGrowthReport,
    UserGrowthTotals,
)
from csr26_api.domains.billing.service import billing_period
from csr26_api.domains.impact.calculations import equivalent_bottles
from csr26_api.domains.partners.models import (
    MerchantReportBucket,
    ReportBucket,
    ReportPeriod,
)
from csr26_api.shared.exceptions import InvalidDataError

logger = logging.getLogger(__name__)

DIRECT_KEY = "direct"
DIRECT_SALES = "Direct Sales"
DIRECT_PARTNER = "Direct"
REVENUE_WINDOW_DAYS = 30


def _add(bucket: ReportBucket, transaction: Transaction) -> None:
    bucket.count += 1
    bucket.revenue += Decimal(transaction.amount)
    bucket.impactKg += Decimal(transaction.impactKg)


def group_by_merchant(transactions: Iterable[Transaction]) -> list[MerchantReportBucket]:
    """Buckets per merchant; transactions without one fall under Direct Sales."""
    groups: dict[str, MerchantReportBucket] = {}
    for t in transactions:
        key = t.merchantId or DIRECT_KEY
        if key not in groups:
            name = t.merchant.name if getattr(t, "merchant", None) else DIRECT_SALES
            groups[key] = MerchantReportBucket(id=key, name=name)
        _add(groups[key], t)
    return list(groups.values())


async def verify_admin_access(
    db: Prisma, code: str, user: Optional[User] = None
) -> AdminAccessResponse:
    """
    Check the admin access code. An authenticated caller presenting a valid
    code is promoted to ADMIN.
    """
    if not secrets.compare_digest(code.encode(), settings.ADMIN_ACCESS_CODE.encode()):
        raise InvalidDataError("Invalid access code")

    if user is None:
        return AdminAccessResponse(message="Access code valid", valid=True)

    await db.user.update(where={"id": user.id}, data={"role": UserRole.ADMIN})
    logger.info("User %s granted admin access via access code", user.email)
    return AdminAccessResponse(message="Admin access granted", role=UserRole.ADMIN.value)


class ReportService:
    """Platform-wide reporting over completed transactions and wallets."""

    def __init__(self, db: Prisma):
        self.db = db

    async def _completed_between(
        self, start: datetime, end: datetime
    ) -> list[Transaction]:
        return await self.db.transaction.find_many(
            where={
                "createdAt": {"gte": start, "lte": end},
                "paymentStatus": PaymentStatus.COMPLETED,
            },
            include={"merchant": True},
        )

    async def get_monthly_summary(
        self, year: Optional[int] = None, month: Optional[int] = None
    ) -> MonthlySummaryReport:
        now = datetime.now(timezone.utc)
        year = year or now.year
        month = month or now.month
        start, end = billing_period(year, month)
        transactions = await self._completed_between(start, end)

        totals = ReportBucket()
        by_mode: dict[str, ReportBucket] = {}
        for t in transactions:
            _add(totals, t)
            _add(by_mode.setdefault(PaymentMode(t.paymentMode).value, ReportBucket()), t)

        return MonthlySummaryReport(
            period=ReportPeriod(year=year, month=month, startDate=start, endDate=end),
            totals=SummaryTotals(
                transactions=totals.count,
                revenue=totals.revenue,
                impactKg=totals.impactKg,
            ),
            byPaymentMode=by_mode,
            byMerchant=group_by_merchant(transactions),
            users=UserCounts(
                total=await self.db.user.count(),
                new=await self.db.user.count(
                    where={"createdAt": {"gte": start, "lte": end}}
                ),
                certified=await self.db.user.count(
                    where={"status": UserStatus.CERTIFIED}
                ),
            ),
        )

    async def get_revenue_report(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        group_by: RevenueGroupBy = RevenueGroupBy.merchant,
    ) -> RevenueReport:
        """Revenue per merchant or partner, the last 30 days by default."""
        end = end_date or datetime.now(timezone.utc)
        start = start_date or end - timedelta(days=REVENUE_WINDOW_DAYS)
        transactions = await self._completed_between(start, end)

        if group_by == RevenueGroupBy.partner:
            data = await self._group_by_partner(transactions)
        else:
            data = group_by_merchant(transactions)

        totals = ReportBucket()
        for t in transactions:
            _add(totals, t)
        return RevenueReport(
            period=DateRange(startDate=start, endDate=end),
            groupBy=group_by,
            data=data,
            totals=totals,
        )

    async def _group_by_partner(
        self, transactions: list[Transaction]
    ) -> list[MerchantReportBucket]:
        groups: dict[str, MerchantReportBucket] = {}
        for t in transactions:
            merchant_partner = t.merchant.partnerId if t.merchant else None
            key = t.partnerId or merchant_partner or DIRECT_KEY
            _add(groups.setdefault(key, MerchantReportBucket(id=key, name=key)), t)

        partner_ids = [key for key in groups if key != DIRECT_KEY]
        partners = await self.db.partner.find_many(where={"id": {"in": partner_ids}})
        names = {p.id: p.name for p in partners}
        for key, bucket in groups.items():
            bucket.name = DIRECT_PARTNER if key == DIRECT_KEY else names.get(key, key)
        return list(groups.values())

    async def get_impact_report(self) -> ImpactReport:
        total_transactions = await self.db.transaction.count()
        completed = await self.db.transaction.find_many(
            where={"paymentStatus": PaymentStatus.COMPLETED}
        )
        totals = ReportBucket()
        for t in completed:
            _add(totals, t)

        users = await self.db.user.find_many()
        matured = sum((Decimal(u.maturedImpactKg) for u in users), Decimal(0))
        pending = sum((Decimal(u.pendingImpactKg) for u in users), Decimal(0))

        return ImpactReport(
            totalTransactions=total_transactions,
            completedTransactions=totals.count,
            totalRevenue=totals.revenue,
            totalImpactKg=totals.impactKg,
            maturedImpactKg=matured,
            pendingImpactKg=pending,
            equivalentBottles=equivalent_bottles(totals.impactKg),
        )

    async def get_user_growth(self, days: int = 30) -> UserGrowthReport:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        users = await self.db.user.find_many(
            where={"createdAt": {"gte": start}}, order={"createdAt": "asc"}
        )

        daily: dict[str, DailyGrowth] = {}
        for user in users:
            day = user.createdAt.astimezone(timezone.utc).date().isoformat()
            entry = daily.setdefault(day, DailyGrowth(date=day))
            entry.total += 1
            if user.status == UserStatus.CERTIFIED:
                entry.certified += 1

        return UserGrowthReport(
            period=GrowthPeriod(startDate=start, endDate=end, days=days),
            dailyGrowth=list(daily.values()),
            totals=UserGrowthTotals(
                total=await self.db.user.count(),
                certified=await self.db.user.count(
                    where={"status": UserStatus.CERTIFIED}
                ),
                accumulation=await self.db.user.count(
                    where={"status": UserStatus.ACCUMULATION}
                ),
            ),
        )
