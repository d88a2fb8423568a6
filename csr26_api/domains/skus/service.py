import logging
from typing import List

from prisma.models import Sku

from prisma import Prisma
from csr26_api.domains.skus.models import SkuCreateRequest, SkuUpdateRequest
from csr26_api.shared.exceptions import ConflictError, SkuNotFoundError

logger = logging.getLogger(__name__)


async def get_active_sku(db: Prisma, code: str) -> Sku:
    """Public lookup used by the landing page; inactive SKUs are hidden."""
    sku = await db.sku.find_first(
        where={"code": code, "active": True}, include={"merchant": True}
    )
    if not sku:
        raise SkuNotFoundError()
    return sku


async def list_skus(db: Prisma) -> List[Sku]:
    return await db.sku.find_many(include={"merchant": True}, order={"createdAt": "desc"})


async def create_sku(db: Prisma, data: SkuCreateRequest) -> Sku:
    if await db.sku.find_unique(where={"code": data.code}):
        raise ConflictError("SKU code already exists")
    sku = await db.sku.create(data=data.model_dump(exclude_none=True))
    logger.info("SKU %s created (%s)", sku.code, sku.paymentMode)
    return sku


async def update_sku(db: Prisma, code: str, data: SkuUpdateRequest) -> Sku:
    if not await db.sku.find_unique(where={"code": code}):
        raise SkuNotFoundError()
    sku = await db.sku.update(
        where={"code": code}, data=data.model_dump(exclude_unset=True)
    )
    if sku is None:
        raise SkuNotFoundError()
    return sku


async def deactivate_sku(db: Prisma, code: str) -> None:
    """Soft delete: transactions keep pointing at the SKU."""
    if not await db.sku.find_unique(where={"code": code}):
        raise SkuNotFoundError()
    await db.sku.update(where={"code": code}, data={"active": False})
    logger.info("SKU %s deactivated", code)
