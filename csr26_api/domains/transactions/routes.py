from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from prisma.enums import PaymentMode
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.auth.dependencies import get_current_user, get_optional_user
from csr26_api.domains.transactions import service
from csr26_api.domains.transactions.models import (
    CreateTransactionRequest,
    TransactionCreatedResponse,
    TransactionListResponse,
    TransactionResponse,
)
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post(
    "",
    response_model=TransactionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createTransaction",
)
async def create_transaction(
    body: CreateTransactionRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: Prisma = Depends(get_db),
) -> TransactionCreatedResponse:
    created = await service.create_transaction(db, body, user)
    return TransactionCreatedResponse(
        **TransactionResponse.from_prisma(created.transaction).model_dump(),
        impact=created.impact,
    )


@router.get("", response_model=TransactionListResponse, operation_id="listMyTransactions")
async def list_my_transactions(
    user: User = Depends(get_current_user),
    db: Prisma = Depends(get_db),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    transactions, total = await service.list_user_transactions(db, user.id, limit, offset)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.get("/all", response_model=TransactionListResponse, operation_id="listAllTransactions")
async def list_all_transactions(
    _: User = Depends(require_permission(Permission.VIEW_ALL_TRANSACTIONS)),
    db: Prisma = Depends(get_db),
    paymentMode: Optional[PaymentMode] = Query(None),
    merchantId: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> TransactionListResponse:
    transactions, total = await service.list_transactions(
        db,
        payment_mode=paymentMode,
        merchant_id=merchantId,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
        total=total,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse, operation_id="getTransaction")
async def get_transaction(
    transaction_id: str,
    user: User = Depends(get_current_user),
    db: Prisma = Depends(get_db),
) -> TransactionResponse:
    return TransactionResponse.from_prisma(
        await service.get_transaction_for_user(db, transaction_id, user)
    )
