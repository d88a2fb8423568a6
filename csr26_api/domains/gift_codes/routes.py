from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from prisma.enums import GiftCodeStatus
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.gift_codes.models import (
    BatchUploadRequest,
    BatchUploadResponse,
    GiftCodeListResponse,
    GiftCodeResponse,
    ValidateGiftCodeRequest,
    ValidateGiftCodeResponse,
)
from csr26_api.domains.gift_codes.service import GiftCodeService
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/gift-codes", tags=["Gift Codes"])


@router.post(
    "/validate",
    response_model=ValidateGiftCodeResponse,
    operation_id="validateGiftCode",
)
async def validate_gift_code(
    body: ValidateGiftCodeRequest, db: Prisma = Depends(get_db)
) -> ValidateGiftCodeResponse:
    return await GiftCodeService(db).validate(body.code, body.skuCode)


@router.get("", response_model=GiftCodeListResponse, operation_id="listGiftCodes")
async def list_gift_codes(
    _: User = Depends(require_permission(Permission.MANAGE_GIFT_CODES)),
    db: Prisma = Depends(get_db),
    status: Optional[GiftCodeStatus] = Query(None, description="Filter by status"),
    skuCode: Optional[str] = Query(None, description="Filter by SKU"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> GiftCodeListResponse:
    return await GiftCodeService(db).list_codes(status, skuCode, limit, offset)


@router.post(
    "/batch",
    response_model=BatchUploadResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="uploadGiftCodes",
)
async def batch_upload(
    body: BatchUploadRequest,
    _: User = Depends(require_permission(Permission.MANAGE_GIFT_CODES)),
    db: Prisma = Depends(get_db),
) -> BatchUploadResponse:
    return await GiftCodeService(db).batch_upload(body.skuCode, body.codes)


@router.patch(
    "/{code}/activate", response_model=GiftCodeResponse, operation_id="activateGiftCode"
)
async def activate_gift_code(
    code: str,
    _: User = Depends(require_permission(Permission.MANAGE_GIFT_CODES)),
    db: Prisma = Depends(get_db),
) -> GiftCodeResponse:
    return GiftCodeResponse.from_prisma(await GiftCodeService(db).activate(code))


@router.delete(
    "/{code}", response_model=GiftCodeResponse, operation_id="deactivateGiftCode"
)
async def deactivate_gift_code(
    code: str,
    _: User = Depends(require_permission(Permission.MANAGE_GIFT_CODES)),
    db: Prisma = Depends(get_db),
) -> GiftCodeResponse:
    return GiftCodeResponse.from_prisma(await GiftCodeService(db).deactivate(code))
