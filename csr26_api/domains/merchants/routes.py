from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.billing.models import InvoiceDetails
from csr26_api.domains.merchants import service
from csr26_api.domains.merchants.models import (
    MerchantBillingInfo,
    MerchantCreateRequest,
    MerchantResponse,
    MerchantSummary,
    MerchantUpdateRequest,
)
from csr26_api.domains.skus.models import SkuResponse
from csr26_api.domains.transactions.models import (
    TransactionListResponse,
    TransactionResponse,
)
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/merchants", tags=["Merchants"])

require_dashboard = require_permission(Permission.VIEW_MERCHANT_DASHBOARD)
require_admin = require_permission(Permission.MANAGE_MERCHANTS)


# Self-service routes are declared before /{merchant_id} so "me" is not
# captured as an id.
@router.get("/me", response_model=MerchantSummary, operation_id="getMyMerchant")
async def get_my_merchant(
    user: User = Depends(require_dashboard), db: Prisma = Depends(get_db)
) -> MerchantSummary:
    merchant = await service.get_merchant_for_user(db, user)
    return await service.get_merchant_summary(db, merchant)


@router.get(
    "/me/transactions",
    response_model=TransactionListResponse,
    operation_id="getMyMerchantTransactions",
)
async def get_my_transactions(
    user: User = Depends(require_dashboard),
    db: Prisma = Depends(get_db),
    dateFrom: Optional[date] = Query(None),
    dateTo: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    merchant = await service.get_merchant_for_user(db, user)
    transactions, total = await service.list_merchant_transactions(
        db, merchant.id, dateFrom, dateTo, limit, offset
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.get(
    "/me/billing", response_model=MerchantBillingInfo, operation_id="getMyMerchantBilling"
)
async def get_my_billing(
    user: User = Depends(require_dashboard), db: Prisma = Depends(get_db)
) -> MerchantBillingInfo:
    merchant = await service.get_merchant_for_user(db, user)
    return await service.get_merchant_billing(db, merchant)


@router.get(
    "/me/invoices/{invoice_id}",
    response_model=InvoiceDetails,
    operation_id="getMyMerchantInvoice",
)
async def get_my_invoice(
    invoice_id: str,
    user: User = Depends(require_dashboard),
    db: Prisma = Depends(get_db),
) -> InvoiceDetails:
    merchant = await service.get_merchant_for_user(db, user)
    return await service.get_merchant_invoice(db, merchant, invoice_id)


@router.get("/me/skus", response_model=List[SkuResponse], operation_id="getMyMerchantSkus")
async def get_my_skus(
    user: User = Depends(require_dashboard), db: Prisma = Depends(get_db)
) -> List[SkuResponse]:
    merchant = await service.get_merchant_for_user(db, user)
    return [
        SkuResponse.from_prisma(sku)
        for sku in await service.list_merchant_skus(db, merchant.id)
    ]


@router.get("", response_model=List[MerchantResponse], operation_id="listMerchants")
async def list_merchants(
    _: User = Depends(require_admin), db: Prisma = Depends(get_db)
) -> List[MerchantResponse]:
    return await service.list_merchants(db)


@router.post(
    "",
    response_model=MerchantResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createMerchant",
)
async def create_merchant(
    body: MerchantCreateRequest,
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
) -> MerchantResponse:
    return MerchantResponse.from_prisma(await service.create_merchant(db, body))


@router.put("/{merchant_id}", response_model=MerchantResponse, operation_id="updateMerchant")
async def update_merchant(
    merchant_id: str,
    body: MerchantUpdateRequest,
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
) -> MerchantResponse:
    return MerchantResponse.from_prisma(
        await service.update_merchant(db, merchant_id, body)
    )


@router.get("/{merchant_id}", response_model=MerchantSummary, operation_id="getMerchant")
async def get_merchant(
    merchant_id: str,
    user: User = Depends(require_dashboard),
    db: Prisma = Depends(get_db),
) -> MerchantSummary:
    merchant = await service.check_merchant_access(db, user, merchant_id)
    return await service.get_merchant_summary(db, merchant)


@router.get(
    "/{merchant_id}/transactions",
    response_model=TransactionListResponse,
    operation_id="getMerchantTransactions",
)
async def get_merchant_transactions(
    merchant_id: str,
    user: User = Depends(require_dashboard),
    db: Prisma = Depends(get_db),
    dateFrom: Optional[date] = Query(None),
    dateTo: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    await service.check_merchant_access(db, user, merchant_id)
    transactions, total = await service.list_merchant_transactions(
        db, merchant_id, dateFrom, dateTo, limit, offset
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.get(
    "/{merchant_id}/billing",
    response_model=MerchantBillingInfo,
    operation_id="getMerchantBilling",
)
async def get_merchant_billing(
    merchant_id: str,
    user: User = Depends(require_dashboard),
    db: Prisma = Depends(get_db),
) -> MerchantBillingInfo:
    merchant = await service.check_merchant_access(db, user, merchant_id)
    return await service.get_merchant_billing(db, merchant)
