from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from prisma.enums import PaymentMode
from prisma.models import Invoice
from pydantic import BaseModel, Field


class InvoiceResponse(BaseModel):
    id: str
    merchantId: str
    periodStart: datetime
    periodEnd: datetime
    transactionCount: int
    totalImpactKg: Decimal
    amount: Decimal
    paid: bool
    paidAt: Optional[datetime] = None
    stripePaymentId: Optional[str] = None
    createdAt: datetime

    @classmethod
    def from_prisma(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            id=invoice.id,
            merchantId=invoice.merchantId,
            periodStart=invoice.periodStart,
            periodEnd=invoice.periodEnd,
            transactionCount=invoice.transactionCount,
            totalImpactKg=invoice.totalImpactKg,
            amount=invoice.amount,
            paid=invoice.paid,
            paidAt=invoice.paidAt,
            stripePaymentId=invoice.stripePaymentId,
            createdAt=invoice.createdAt,
        )


class BillingMerchantSummary(BaseModel):
    id: str
    name: str
    email: str


class InvoiceTransaction(BaseModel):
    id: str
    amount: Decimal
    impactKg: Decimal
    paymentMode: PaymentMode
    createdAt: datetime


class InvoiceDetails(InvoiceResponse):
    merchant: BillingMerchantSummary
    transactions: List[InvoiceTransaction]


class BillingResult(BaseModel):
    merchantId: str
    merchantName: str
    invoice: Optional[InvoiceResponse] = None
    error: Optional[str] = None


class MonthlyBillingResult(BaseModel):
    processedAt: datetime
    periodStart: datetime
    periodEnd: datetime
    merchantsProcessed: int
    invoicesGenerated: int
    totalBilled: Decimal
    totalImpactKg: Decimal
    results: List[BillingResult]


class RunBillingRequest(BaseModel):
    year: Optional[int] = Field(None, ge=2000, le=9999)
    month: Optional[int] = Field(None, ge=1, le=12, description="1-12")


class MarkInvoicePaidRequest(BaseModel):
    stripePaymentId: Optional[str] = None


class BillingStats(BaseModel):
    totalInvoices: int
    paidInvoices: int
    unpaidInvoices: int
    totalBilled: Decimal
    totalPaid: Decimal
    totalOutstanding: Decimal


class OutstandingBalance(BaseModel):
    merchant: BillingMerchantSummary
    currentBalance: Decimal
    unpaidInvoices: int
    totalUnpaid: Decimal
