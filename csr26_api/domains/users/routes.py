from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from prisma.enums import UserStatus
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.auth.models import UserResponse
from csr26_api.domains.users import service
from csr26_api.domains.users.models import (
    AdjustWalletRequest,
    SortOrder,
    UserDetail,
    UserListItem,
    UserListResponse,
    UserSortField,
    UserUpdateRequest,
)
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/users", tags=["Users"])

require_admin = require_permission(Permission.MANAGE_USERS)


@router.get("", response_model=UserListResponse, operation_id="listUsers")
async def list_users(
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
    search: Optional[str] = Query(None, description="Email or name contains"),
    status: Optional[UserStatus] = Query(None),
    sortBy: UserSortField = Query(UserSortField.createdAt),
    sortOrder: SortOrder = Query(SortOrder.desc),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> UserListResponse:
    return await service.list_users(db, search, status, sortBy, sortOrder, limit, offset)


@router.get("/export/csv", operation_id="exportUsersCsv")
async def export_users_csv(
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
    status: Optional[UserStatus] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
) -> Response:
    content = await service.export_users_csv(db, status, startDate, endDate)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={service.csv_filename()}"
        },
    )


@router.get("/{user_id}", response_model=UserDetail, operation_id="getUser")
async def get_user(
    user_id: str,
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
) -> UserDetail:
    return await service.get_user_detail(db, user_id)


@router.put("/{user_id}", response_model=UserResponse, operation_id="updateUser")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
) -> UserResponse:
    return UserResponse.from_prisma(await service.update_user(db, user_id, body))


@router.post(
    "/{user_id}/adjust-wallet", response_model=UserListItem, operation_id="adjustUserWallet"
)
async def adjust_wallet(
    user_id: str,
    body: AdjustWalletRequest,
    _: User = Depends(require_admin),
    db: Prisma = Depends(get_db),
) -> UserListItem:
    return await service.adjust_wallet(db, user_id, body.amount, body.reason)
