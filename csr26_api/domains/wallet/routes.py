from typing import List

from fastapi import APIRouter, Depends, Query
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.auth.dependencies import get_current_user
from csr26_api.domains.wallet import service
from csr26_api.domains.wallet.models import WalletHistoryEntry, WalletSummary

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("", response_model=WalletSummary, operation_id="getWallet")
async def get_wallet(
    user: User = Depends(get_current_user), db: Prisma = Depends(get_db)
) -> WalletSummary:
    return await service.build_wallet_summary(db, user)


@router.get("/email/{email}", response_model=WalletSummary, operation_id="getWalletByEmail")
async def get_wallet_by_email(email: str, db: Prisma = Depends(get_db)) -> WalletSummary:
    return await service.get_wallet_by_email(db, email)


@router.get("/history", response_model=List[WalletHistoryEntry], operation_id="getWalletHistory")
async def get_wallet_history(
    user: User = Depends(get_current_user),
    db: Prisma = Depends(get_db),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> List[WalletHistoryEntry]:
    return await service.get_wallet_history(db, user.id, limit, offset)
