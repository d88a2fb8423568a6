import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from prisma.enums import PaymentMode, PaymentStatus
from prisma.models import Partner, Transaction
from prisma.types import TransactionWhereInput

from prisma import Prisma
from csr26_api.core.email import EmailService
from csr26_api.core.settings import settings
from csr26_api.domains.auth.tokens import create_partner_token, generate_magic_link_token
from csr26_api.domains.billing.service import billing_period
from csr26_api.domains.partners.models import (
    MerchantReportBucket,
    PartnerAuthResponse,
    PartnerCreateRequest,
    PartnerDashboard,
    PartnerIdentity,
    PartnerMagicLinkResponse,
    PartnerMerchantDetail,
    PartnerMerchantOverview,
    PartnerReportTotals,
    PartnerResponse,
    PartnerStats,
    PartnerSummaryReport,
    PartnerUpdateRequest,
    ReportBucket,
    ReportPeriod,
)
from csr26_api.shared.exceptions import (
    ConflictError,
    InvalidDataError,
    NotAuthorizedError,
    NotFoundError,
    PartnerNotFoundError,
)

logger = logging.getLogger(__name__)

DIRECT_KEY = "direct"
DIRECT_NAME = "Direct"


def _totals(transactions: Iterable[Transaction]) -> ReportBucket:
    bucket = ReportBucket()
    for t in transactions:
        bucket.count += 1
        bucket.revenue += Decimal(t.amount)
        bucket.impactKg += Decimal(t.impactKg)
    return bucket


def partner_scope(partner_id: str, merchant_ids: List[str]) -> TransactionWhereInput:
    """Transactions through the partner's merchants or attributed to it directly."""
    return {
        "OR": [
            {"merchantId": {"in": merchant_ids}},
            {"partnerId": partner_id},
        ]
    }


class PartnerService:
    """Partner portal login, dashboard and reporting."""

    def __init__(self, db: Prisma, email_service: EmailService):
        self.db = db
        self.email_service = email_service

    async def send_magic_link(self, email: str) -> PartnerMagicLinkResponse:
        partner = await self.db.partner.find_unique(where={"email": email})
        if not partner:
            raise PartnerNotFoundError()
        if not partner.active:
            raise NotAuthorizedError("Partner account is inactive")

        token = generate_magic_link_token()
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.MAGIC_LINK_TTL_MINUTES
        )
        await self.db.partnermagiclink.create(
            data={"partnerId": partner.id, "token": token, "expiresAt": expires_at}
        )
        logger.info("Partner magic link issued for %s (%s)", email, partner.name)

        delivery = await self.email_service.send_magic_link(
            partner.email, token, partner.name, audience="partner"
        )
        return PartnerMagicLinkResponse(
            message=delivery.message, magicLinkUrl=delivery.magic_link_url
        )

    async def verify_magic_link(self, token: str) -> PartnerAuthResponse:
        magic_link = await self.db.partnermagiclink.find_unique(
            where={"token": token}, include={"partner": True}
        )
        if not magic_link or not magic_link.partner:
            raise NotFoundError("Invalid or expired token")
        if magic_link.used:
            raise InvalidDataError("Magic link already used")
        if magic_link.expiresAt < datetime.now(timezone.utc):
            raise InvalidDataError("Magic link expired")
        if not magic_link.partner.active:
            raise NotAuthorizedError("Partner account is inactive")

        consumed = await self.db.partnermagiclink.update_many(
            where={"token": token, "used": False}, data={"used": True}
        )
        if consumed == 0:
            raise InvalidDataError("Magic link already used")

        partner = magic_link.partner
        return PartnerAuthResponse(
            partner=PartnerIdentity(id=partner.id, name=partner.name, email=partner.email),
            token=create_partner_token(partner.id, partner.email),
        )

    async def _merchant_ids(self, partner_id: str) -> List[str]:
        merchants = await self.db.merchant.find_many(where={"partnerId": partner_id})
        return [m.id for m in merchants]

    async def get_dashboard(self, partner: Partner) -> PartnerDashboard:
        """
        Partner overview. Totals count each completed transaction once, whether
        it came through one of the partner's merchants or was attributed
        directly.
        """
        merchants = await self.db.merchant.find_many(
            where={"partnerId": partner.id}, order={"name": "asc"}
        )
        merchant_ids = [m.id for m in merchants]
        scope = partner_scope(partner.id, merchant_ids)

        completed = await self.db.transaction.find_many(
            where={**scope, "paymentStatus": PaymentStatus.COMPLETED}
        )
        month_start = datetime.now(timezone.utc).replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        totals = _totals(completed)
        monthly = _totals(t for t in completed if t.createdAt >= month_start)

        overviews = [
            PartnerMerchantOverview(
                id=m.id,
                name=m.name,
                email=m.email,
                multiplier=m.multiplier,
                currentBalance=m.currentBalance,
                transactionCount=await self.db.transaction.count(
                    where={"merchantId": m.id}
                ),
            )
            for m in merchants
        ]
        return PartnerDashboard(
            partner=PartnerResponse.from_prisma(partner),
            merchants=overviews,
            stats=PartnerStats(
                totalMerchants=len(merchants),
                totalTransactions=totals.count,
                totalRevenue=totals.revenue,
                totalImpactKg=totals.impactKg,
                monthlyTransactions=monthly.count,
                monthlyRevenue=monthly.revenue,
                monthlyImpactKg=monthly.impactKg,
            ),
        )

    async def list_merchants(self, partner_id: str) -> List[PartnerMerchantDetail]:
        merchants = await self.db.merchant.find_many(
            where={"partnerId": partner_id}, order={"name": "asc"}
        )
        details = []
        for m in merchants:
            completed = await self.db.transaction.find_many(
                where={"merchantId": m.id, "paymentStatus": PaymentStatus.COMPLETED}
            )
            totals = _totals(completed)
            details.append(
                PartnerMerchantDetail(
                    id=m.id,
                    name=m.name,
                    email=m.email,
                    multiplier=m.multiplier,
                    monthlyBilling=m.monthlyBilling,
                    currentBalance=m.currentBalance,
                    transactionCount=await self.db.transaction.count(
                        where={"merchantId": m.id}
                    ),
                    skuCount=await self.db.sku.count(where={"merchantId": m.id}),
                    totalRevenue=totals.revenue,
                    totalImpactKg=totals.impactKg,
                    createdAt=m.createdAt,
                )
            )
        return details

    async def list_transactions(
        self,
        partner_id: str,
        merchant_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[List[Transaction], int]:
        merchant_ids = await self._merchant_ids(partner_id)
        if merchant_id:
            if merchant_id not in merchant_ids:
                raise NotAuthorizedError("Access denied to this merchant")
            where: TransactionWhereInput = {"merchantId": merchant_id}
        else:
            where = partner_scope(partner_id, merchant_ids)

        transactions = await self.db.transaction.find_many(
            where=where,
            include={"user": True, "merchant": True, "sku": True},
            order={"createdAt": "desc"},
            take=limit,
            skip=offset,
        )
        return transactions, await self.db.transaction.count(where=where)

    async def get_summary_report(
        self, partner: Partner, year: Optional[int] = None, month: Optional[int] = None
    ) -> PartnerSummaryReport:
        """Completed transactions in one calendar month, current month by default."""
        now = datetime.now(timezone.utc)
        year = year or now.year
        month = month or now.month
        start, end = billing_period(year, month)

        merchant_ids = await self._merchant_ids(partner.id)
        transactions = await self.db.transaction.find_many(
            where={
                **partner_scope(partner.id, merchant_ids),
                "paymentStatus": PaymentStatus.COMPLETED,
                "createdAt": {"gte": start, "lte": end},
            },
            include={"merchant": True},
        )

        by_merchant: dict[str, MerchantReportBucket] = {}
        by_mode: dict[str, ReportBucket] = {}
        for t in transactions:
            key = t.merchantId or DIRECT_KEY
            if key not in by_merchant:
                name = t.merchant.name if t.merchant else DIRECT_NAME
                by_merchant[key] = MerchantReportBucket(id=key, name=name)
            mode = PaymentMode(t.paymentMode).value
            by_mode.setdefault(mode, ReportBucket())
            for bucket in (by_merchant[key], by_mode[mode]):
                bucket.count += 1
                bucket.revenue += Decimal(t.amount)
                bucket.impactKg += Decimal(t.impactKg)

        totals = _totals(transactions)
        commission = totals.revenue * Decimal(partner.commissionRate) / 100
        return PartnerSummaryReport(
            period=ReportPeriod(year=year, month=month, startDate=start, endDate=end),
            totals=PartnerReportTotals(
                transactions=totals.count,
                revenue=totals.revenue,
                impactKg=totals.impactKg,
                estimatedCommission=commission.quantize(Decimal("0.01")),
            ),
            byMerchant=list(by_merchant.values()),
            byPaymentMode=by_mode,
        )

    async def list_partners(self) -> List[PartnerResponse]:
        partners = await self.db.partner.find_many(order={"name": "asc"})
        return [
            PartnerResponse.from_prisma(
                p, merchant_count=await self.db.merchant.count(where={"partnerId": p.id})
            )
            for p in partners
        ]

    async def create_partner(self, data: PartnerCreateRequest) -> Partner:
        if await self.db.partner.find_unique(where={"email": data.email}):
            raise ConflictError("Partner with this email already exists")
        partner = await self.db.partner.create(data=data.model_dump(exclude_none=True))
        logger.info("Partner %s created (%s)", partner.id, partner.name)
        return partner

    async def update_partner(self, partner_id: str, data: PartnerUpdateRequest) -> Partner:
        existing = await self.db.partner.find_unique(where={"id": partner_id})
        if not existing:
            raise PartnerNotFoundError()
        if data.email and data.email != existing.email:
            if await self.db.partner.find_unique(where={"email": data.email}):
                raise ConflictError("Partner with this email already exists")
        partner = await self.db.partner.update(
            where={"id": partner_id}, data=data.model_dump(exclude_unset=True)
        )
        if partner is None:
            raise PartnerNotFoundError()
        return partner
