import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from prisma.models import Setting

from prisma import Prisma

logger = logging.getLogger(__name__)

PRICE_PER_KG = "PRICE_PER_KG"
CERTIFICATION_THRESHOLD = "CERTIFICATION_THRESHOLD"
DEFAULT_MULTIPLIER = "DEFAULT_MULTIPLIER"
MONTHLY_BILLING_MINIMUM = "MONTHLY_BILLING_MINIMUM"
ADMIN_SECRET_CODE = "ADMIN_SECRET_CODE"
ADMIN_EMAIL = "ADMIN_EMAIL"

DEFAULTS: dict[str, str] = {
    PRICE_PER_KG: "0.11",
    CERTIFICATION_THRESHOLD: "10",
    DEFAULT_MULTIPLIER: "1",
    MONTHLY_BILLING_MINIMUM: "10",
    ADMIN_EMAIL: "admin@csr26.it",
}


async def get_setting_value(
    db: Prisma, key: str, default: Optional[str] = None
) -> Optional[str]:
    """Stored value for ``key``, else ``default``, else the built-in default."""
    setting = await db.setting.find_unique(where={"key": key})
    if setting is not None:
        return setting.value
    return default if default is not None else DEFAULTS.get(key)


async def get_decimal_setting(db: Prisma, key: str) -> Decimal:
    value = await get_setting_value(db, key)
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        logger.warning("Setting %s has non-numeric value %r, using default", key, value)
        return Decimal(DEFAULTS[key])


async def get_price_per_kg(db: Prisma) -> Decimal:
    return await get_decimal_setting(db, PRICE_PER_KG)


async def get_certification_threshold(db: Prisma) -> Decimal:
    return await get_decimal_setting(db, CERTIFICATION_THRESHOLD)


async def get_default_multiplier(db: Prisma) -> Decimal:
    """
    Global multiplier. Multipliers are stored as whole numbers on
    transactions, so a fractional setting falls back to the default.
    """
    value = await get_decimal_setting(db, DEFAULT_MULTIPLIER)
    if value != value.to_integral_value():
        logger.warning(
            "Setting %s has non-integer value %s, using default", DEFAULT_MULTIPLIER, value
        )
        return Decimal(DEFAULTS[DEFAULT_MULTIPLIER])
    return value


async def get_all_settings(db: Prisma) -> dict[str, str]:
    settings = await db.setting.find_many()
    return {setting.key: setting.value for setting in settings}


async def get_setting(db: Prisma, key: str) -> Optional[Setting]:
    return await db.setting.find_unique(where={"key": key})


async def upsert_setting(
    db: Prisma, key: str, value: str, description: Optional[str] = None
) -> Setting:
    update: dict = {"value": value}
    if description is not None:
        update["description"] = description
    setting = await db.setting.upsert(
        where={"key": key},
        data={
            "create": {"key": key, "value": value, "description": description},
            "update": update,
        },
    )
    logger.info("Setting %s updated", key)
    return setting
