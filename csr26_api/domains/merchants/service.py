import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import List, Optional

from prisma.enums import PaymentStatus
from prisma.models import Merchant, Sku, Transaction, User
from prisma.types import TransactionWhereInput

from prisma import Prisma
from csr26_api.domains.billing.models import InvoiceDetails, InvoiceResponse
from csr26_api.domains.billing.service import BillingService, add_one_month
from csr26_api.domains.merchants.models import (
    MerchantBillingInfo,
    MerchantCreateRequest,
    MerchantResponse,
    MerchantSummary,
    MerchantUpdateRequest,
)
from csr26_api.shared.exceptions import (
    ConflictError,
    InvoiceNotFoundError,
    MerchantNotFoundError,
    NotAuthorizedError,
)
from csr26_api.shared.permissions import Permission, has_permission

logger = logging.getLogger(__name__)


async def get_merchant(db: Prisma, merchant_id: str) -> Merchant:
    merchant = await db.merchant.find_unique(where={"id": merchant_id})
    if not merchant:
        raise MerchantNotFoundError()
    return merchant


async def get_merchant_for_user(db: Prisma, user: User) -> Merchant:
    """The merchant account linked to ``user`` through its email address."""
    merchant = await db.merchant.find_unique(where={"email": user.email})
    if not merchant:
        raise MerchantNotFoundError("No merchant account linked to this user")
    return merchant


async def check_merchant_access(db: Prisma, user: User, merchant_id: str) -> Merchant:
    """
    Admins may read any merchant; merchant users only their own.

    Raises:
        MerchantNotFoundError: merchant does not exist
        NotAuthorizedError: merchant belongs to someone else
    """
    merchant = await get_merchant(db, merchant_id)
    if has_permission(user.role, Permission.MANAGE_MERCHANTS):
        return merchant
    if merchant.email != user.email:
        raise NotAuthorizedError("Access denied to this merchant")
    return merchant


async def list_merchants(db: Prisma) -> List[MerchantResponse]:
    merchants = await db.merchant.find_many(order={"createdAt": "desc"})
    return [
        MerchantResponse.from_prisma(
            m,
            transaction_count=await db.transaction.count(where={"merchantId": m.id}),
            sku_count=await db.sku.count(where={"merchantId": m.id}),
        )
        for m in merchants
    ]


async def create_merchant(db: Prisma, data: MerchantCreateRequest) -> Merchant:
    if await db.merchant.find_unique(where={"email": data.email}):
        raise ConflictError("Merchant with this email already exists")
    merchant = await db.merchant.create(data=data.model_dump(exclude_none=True))
    logger.info("Merchant %s created (%s)", merchant.id, merchant.name)
    return merchant


async def update_merchant(
    db: Prisma, merchant_id: str, data: MerchantUpdateRequest
) -> Merchant:
    existing = await get_merchant(db, merchant_id)
    if data.email and data.email != existing.email:
        if await db.merchant.find_unique(where={"email": data.email}):
            raise ConflictError("Merchant with this email already exists")
    merchant = await db.merchant.update(
        where={"id": merchant_id}, data=data.model_dump(exclude_unset=True)
    )
    if merchant is None:
        raise MerchantNotFoundError()
    return merchant


async def get_merchant_summary(db: Prisma, merchant: Merchant) -> MerchantSummary:
    completed = await db.transaction.find_many(
        where={"merchantId": merchant.id, "paymentStatus": PaymentStatus.COMPLETED}
    )
    return MerchantSummary(
        id=merchant.id,
        name=merchant.name,
        multiplier=merchant.multiplier,
        transactionCount=len(completed),
        totalImpactKg=sum((Decimal(t.impactKg) for t in completed), Decimal(0)),
        currentBalance=merchant.currentBalance,
        nextBillingDate=(
            add_one_month(merchant.lastBillingDate) if merchant.lastBillingDate else None
        ),
    )


async def list_merchant_transactions(
    db: Prisma,
    merchant_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[List[Transaction], int]:
    """Merchant transactions, newest first. ``date_to`` includes the whole day."""
    where: TransactionWhereInput = {"merchantId": merchant_id}
    if date_from or date_to:
        created_at: dict = {}
        if date_from:
            created_at["gte"] = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        if date_to:
            created_at["lte"] = datetime.combine(date_to, time.max, tzinfo=timezone.utc)
        where["createdAt"] = created_at  # type: ignore[typeddict-item]

    transactions = await db.transaction.find_many(
        where=where,
        include={"user": True, "sku": True},
        order={"createdAt": "desc"},
        take=limit,
        skip=offset,
    )
    return transactions, await db.transaction.count(where=where)


async def get_merchant_billing(db: Prisma, merchant: Merchant) -> MerchantBillingInfo:
    now = datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    pending = await db.transaction.count(
        where={"merchantId": merchant.id, "createdAt": {"gte": month_start}}
    )
    invoices = await BillingService(db).get_merchant_invoices(merchant.id)
    return MerchantBillingInfo(
        currentBalance=merchant.currentBalance,
        pendingTransactions=pending,
        nextBillingDate=add_one_month(merchant.lastBillingDate or now),
        lastBillingDate=merchant.lastBillingDate,
        invoices=[InvoiceResponse.from_prisma(i) for i in invoices],
    )


async def get_merchant_invoice(
    db: Prisma, merchant: Merchant, invoice_id: str
) -> InvoiceDetails:
    details = await BillingService(db).get_invoice_details(invoice_id)
    if details.merchantId != merchant.id:
        raise InvoiceNotFoundError()
    return details


async def list_merchant_skus(db: Prisma, merchant_id: str) -> List[Sku]:
    return await db.sku.find_many(
        where={"merchantId": merchant_id},
        include={"merchant": True},
        order={"createdAt": "desc"},
    )
