from typing import List

from fastapi import APIRouter, Depends, status
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.skus import service
from csr26_api.domains.skus.models import SkuCreateRequest, SkuResponse, SkuUpdateRequest
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/skus", tags=["SKUs"])


@router.get("/{code}", response_model=SkuResponse, operation_id="getSku")
async def get_sku(code: str, db: Prisma = Depends(get_db)) -> SkuResponse:
    """Active SKU by code, with a merchant summary. Public."""
    return SkuResponse.from_prisma(await service.get_active_sku(db, code))


@router.get("", response_model=List[SkuResponse], operation_id="listSkus")
async def list_skus(
    _: User = Depends(require_permission(Permission.MANAGE_SKUS)),
    db: Prisma = Depends(get_db),
) -> List[SkuResponse]:
    return [SkuResponse.from_prisma(sku) for sku in await service.list_skus(db)]


@router.post(
    "",
    response_model=SkuResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createSku",
)
async def create_sku(
    body: SkuCreateRequest,
    _: User = Depends(require_permission(Permission.MANAGE_SKUS)),
    db: Prisma = Depends(get_db),
) -> SkuResponse:
    return SkuResponse.from_prisma(await service.create_sku(db, body))


@router.put("/{code}", response_model=SkuResponse, operation_id="updateSku")
async def update_sku(
    code: str,
    body: SkuUpdateRequest,
    _: User = Depends(require_permission(Permission.MANAGE_SKUS)),
    db: Prisma = Depends(get_db),
) -> SkuResponse:
    return SkuResponse.from_prisma(await service.update_sku(db, code, body))


@router.delete("/{code}", operation_id="deleteSku")
async def delete_sku(
    code: str,
    _: User = Depends(require_permission(Permission.MANAGE_SKUS)),
    db: Prisma = Depends(get_db),
) -> dict[str, str]:
    await service.deactivate_sku(db, code)
    return {"message": "SKU deactivated"}
