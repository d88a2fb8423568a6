import calendar
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prisma.enums import PaymentStatus
from prisma.models import Invoice
from prisma.types import TransactionWhereInput

from prisma import Prisma
from csr26_api.domains.billing.models import (
    BillingMerchantSummary,
    BillingResult,
    BillingStats,
    InvoiceDetails,
    InvoiceResponse,
    InvoiceTransaction,
    MonthlyBillingResult,
    OutstandingBalance,
)
from csr26_api.domains.transactions.service import MERCHANT_BILLED_MODES
from csr26_api.shared.exceptions import InvoiceNotFoundError

logger = logging.getLogger(__name__)


def add_one_month(value: datetime) -> datetime:
    """Same day next month, clamped to the last day of a shorter month."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def billing_period(
    year: Optional[int] = None,
    month: Optional[int] = None,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """
    First and last instant of a calendar month in UTC.

    Without an explicit year and month the previous calendar month is used.
    """
    now = now or datetime.now(timezone.utc)
    if year is None or month is None:
        previous = now.month - 1 or 12
        year = year if year is not None else (now.year - 1 if now.month == 1 else now.year)
        month = month if month is not None else previous
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def _billed_transactions_where(
    merchant_id: str, period_start: datetime, period_end: datetime
) -> TransactionWhereInput:
    return {
        "merchantId": merchant_id,
        "createdAt": {"gte": period_start, "lte": period_end},
        "paymentStatus": PaymentStatus.COMPLETED,
        "paymentMode": {"in": list(MERCHANT_BILLED_MODES)},
    }


class BillingService:
    """Monthly merchant invoicing from accumulated CLAIM/ALLOCATION balances."""

    def __init__(self, db: Prisma):
        self.db = db

    async def generate_merchant_invoice(
        self, merchant_id: str, period_start: datetime, period_end: datetime
    ) -> Optional[Invoice]:
        """
        Invoice a merchant's current balance and deduct the invoiced amount.

        Returns None when the merchant is missing, not on monthly billing, or
        has nothing to bill. Count and impact cover the merchant-billed
        transactions completed in the period.
        """
        merchant = await self.db.merchant.find_unique(where={"id": merchant_id})
        if not merchant:
            logger.error("Billing: merchant not found %s", merchant_id)
            return None
        if not merchant.monthlyBilling:
            logger.info("Billing: monthly billing disabled for %s", merchant.name)
            return None

        balance = Decimal(merchant.currentBalance)
        if balance <= 0:
            logger.info("Billing: no balance for %s", merchant.name)
            return None

        transactions = await self.db.transaction.find_many(
            where=_billed_transactions_where(merchant_id, period_start, period_end)
        )
        total_impact = sum((Decimal(t.impactKg) for t in transactions), Decimal(0))

        # Subtract what was invoiced; accruals landing meanwhile carry over
        async with self.db.tx() as tx:
            invoice = await tx.invoice.create(
                data={
                    "merchantId": merchant_id,
                    "periodStart": period_start,
                    "periodEnd": period_end,
                    "transactionCount": len(transactions),
                    "totalImpactKg": total_impact,
                    "amount": balance,
                    "paid": False,
                }
            )
            await tx.merchant.update(
                where={"id": merchant_id},
                data={
                    "currentBalance": {"decrement": balance},
                    "lastBillingDate": datetime.now(timezone.utc),
                },
            )
        logger.info("Billing: invoice generated for %s: EUR %.2f", merchant.name, balance)
        return invoice

    async def run_monthly_billing(
        self, year: Optional[int] = None, month: Optional[int] = None
    ) -> MonthlyBillingResult:
        period_start, period_end = billing_period(year, month)
        logger.info(
            "Billing: starting monthly run for %s - %s",
            period_start.isoformat(),
            period_end.isoformat(),
        )

        merchants = await self.db.merchant.find_many(where={"monthlyBilling": True})
        results: list[BillingResult] = []
        invoices_generated = 0
        total_billed = Decimal(0)
        total_impact = Decimal(0)

        for merchant in merchants:
            try:
                invoice = await self.generate_merchant_invoice(
                    merchant.id, period_start, period_end
                )
            except Exception as e:
                logger.exception("Billing: error processing merchant %s", merchant.name)
                results.append(
                    BillingResult(
                        merchantId=merchant.id, merchantName=merchant.name, error=str(e)
                    )
                )
                continue

            if invoice:
                invoices_generated += 1
                total_billed += Decimal(invoice.amount)
                total_impact += Decimal(invoice.totalImpactKg)
            results.append(
                BillingResult(
                    merchantId=merchant.id,
                    merchantName=merchant.name,
                    invoice=InvoiceResponse.from_prisma(invoice) if invoice else None,
                )
            )

        logger.info(
            "Billing: monthly run completed, %d invoices, EUR %.2f total",
            invoices_generated,
            total_billed,
        )
        return MonthlyBillingResult(
            processedAt=datetime.now(timezone.utc),
            periodStart=period_start,
            periodEnd=period_end,
            merchantsProcessed=len(merchants),
            invoicesGenerated=invoices_generated,
            totalBilled=total_billed,
            totalImpactKg=total_impact,
            results=results,
        )

    async def get_invoice_details(self, invoice_id: str) -> InvoiceDetails:
        invoice = await self.db.invoice.find_unique(
            where={"id": invoice_id}, include={"merchant": True}
        )
        if not invoice or not invoice.merchant:
            raise InvoiceNotFoundError()

        transactions = await self.db.transaction.find_many(
            where=_billed_transactions_where(
                invoice.merchantId, invoice.periodStart, invoice.periodEnd
            ),
            order={"createdAt": "asc"},
        )
        return InvoiceDetails(
            **InvoiceResponse.from_prisma(invoice).model_dump(),
            merchant=BillingMerchantSummary(
                id=invoice.merchant.id,
                name=invoice.merchant.name,
                email=invoice.merchant.email,
            ),
            transactions=[
                InvoiceTransaction(
                    id=t.id,
                    amount=t.amount,
                    impactKg=t.impactKg,
                    paymentMode=t.paymentMode,
                    createdAt=t.createdAt,
                )
                for t in transactions
            ],
        )

    async def get_merchant_invoices(self, merchant_id: str, limit: int = 12) -> list[Invoice]:
        return await self.db.invoice.find_many(
            where={"merchantId": merchant_id},
            order={"createdAt": "desc"},
            take=limit,
        )

    async def mark_invoice_paid(
        self, invoice_id: str, stripe_payment_id: Optional[str] = None
    ) -> Invoice:
        invoice = await self.db.invoice.update(
            where={"id": invoice_id},
            data={
                "paid": True,
                "paidAt": datetime.now(timezone.utc),
                "stripePaymentId": stripe_payment_id,
            },
        )
        if invoice is None:
            raise InvoiceNotFoundError()
        logger.info("Billing: invoice %s marked paid", invoice_id)
        return invoice

    async def get_billing_stats(self) -> BillingStats:
        invoices = await self.db.invoice.find_many()
        total_billed = sum((Decimal(i.amount) for i in invoices), Decimal(0))
        paid = [i for i in invoices if i.paid]
        total_paid = sum((Decimal(i.amount) for i in paid), Decimal(0))
        return BillingStats(
            totalInvoices=len(invoices),
            paidInvoices=len(paid),
            unpaidInvoices=len(invoices) - len(paid),
            totalBilled=total_billed,
            totalPaid=total_paid,
            totalOutstanding=total_billed - total_paid,
        )

    async def get_merchants_with_balance(self) -> list[OutstandingBalance]:
        """Merchants with an unbilled balance or unpaid invoices."""
        merchants = await self.db.merchant.find_many(
            where={
                "OR": [
                    {"currentBalance": {"gt": Decimal(0)}},
                    {"invoices": {"some": {"paid": False}}},
                ]
            },
            include={"invoices": {"where": {"paid": False}}},
        )
        return [
            OutstandingBalance(
                merchant=BillingMerchantSummary(id=m.id, name=m.name, email=m.email),
                currentBalance=m.currentBalance,
                unpaidInvoices=len(m.invoices or []),
                totalUnpaid=sum(
                    (Decimal(i.amount) for i in m.invoices or []), Decimal(0)
                ),
            )
            for m in merchants
        ]
