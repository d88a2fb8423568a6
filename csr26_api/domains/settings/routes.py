from fastapi import APIRouter, Depends
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.domains.settings import service
from csr26_api.domains.settings.models import SettingResponse, SettingUpdateRequest
from csr26_api.shared.exceptions import NotFoundError
from csr26_api.shared.permissions import Permission, require_permission

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get(
    "",
    response_model=dict[str, str],
    operation_id="getSettings",
    summary="All settings as a key/value map",
)
async def get_settings(db: Prisma = Depends(get_db)) -> dict[str, str]:
    return await service.get_all_settings(db)


@router.get("/{key}", response_model=SettingResponse, operation_id="getSetting")
async def get_setting(key: str, db: Prisma = Depends(get_db)) -> SettingResponse:
    setting = await service.get_setting(db, key)
    if not setting:
        raise NotFoundError("Setting not found")
    return SettingResponse.from_prisma(setting)


@router.put("/{key}", response_model=SettingResponse, operation_id="updateSetting")
async def update_setting(
    key: str,
    body: SettingUpdateRequest,
    _: User = Depends(require_permission(Permission.MANAGE_SETTINGS)),
    db: Prisma = Depends(get_db),
) -> SettingResponse:
    setting = await service.upsert_setting(db, key, body.value, body.description)
    return SettingResponse.from_prisma(setting)
