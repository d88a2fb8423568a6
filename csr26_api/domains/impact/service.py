import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prisma.enums import PaymentStatus, UserStatus
from prisma.models import Transaction

from prisma import Prisma
from csr26_api.domains.corsair.service import CorsairExportService
from csr26_api.domains.impact.models import MaturationResult
from csr26_api.domains.settings.service import get_certification_threshold

logger = logging.getLogger(__name__)

# (matured flag, maturity date, tranche kg) per maturation stage
MID_TERM = ("midTermMatured", "midTermMaturesAt", "midTermImpactKg")
FINAL = ("finalMatured", "finalMaturesAt", "finalImpactKg")


async def check_threshold_upgrade(db: Prisma, user_id: str) -> bool:
    """
    Promote an ACCUMULATION user to CERTIFIED once their wallet balance
    reaches the certification threshold.

    The promotion is a single conditional update, so concurrent credits
    certify (and export) a user once. A newly certified user is exported to
    Corsair straight away; if that export fails the monthly batch export
    picks the user up.

    Returns:
        True if the user was upgraded by this call
    """
    threshold = await get_certification_threshold(db)
    upgraded = await db.user.update_many(
        where={
            "id": user_id,
            "status": UserStatus.ACCUMULATION,
            "walletBalance": {"gte": threshold},
        },
        data={"status": UserStatus.CERTIFIED},
    )
    if upgraded == 0:
        return False
    logger.info("User %s certified at threshold %s", user_id, threshold)

    try:
        await CorsairExportService(db).export_user(user_id)
    except Exception:
        logger.exception("Corsair export failed for newly certified user %s", user_id)
    return True


async def credit_wallet(
    db: Prisma,
    user_id: str,
    amount: Decimal,
    impact_kg: Decimal,
    matured_kg: Decimal,
) -> None:
    """
    Add a completed transaction to the user's wallet totals.

    Uses atomic increments so concurrent credits and the maturation pass
    never overwrite each other. Safe to call with a transaction client.

    Args:
        amount: EUR added to the balance (negative for corrections)
        impact_kg: Total impact credited
        matured_kg: Portion of ``impact_kg`` that is already matured; the rest
            is pending until its maturation date
    """
    user = await db.user.update(
        where={"id": user_id},
        data={
            "walletBalance": {"increment": Decimal(amount)},
            "walletImpactKg": {"increment": Decimal(impact_kg)},
            "maturedImpactKg": {"increment": Decimal(matured_kg)},
            "pendingImpactKg": {"increment": Decimal(impact_kg) - Decimal(matured_kg)},
        },
    )
    if user is None:
        raise ValueError(f"User {user_id} not found")


async def update_user_wallet(
    db: Prisma,
    user_id: str,
    amount: Decimal,
    impact_kg: Decimal,
    matured_kg: Decimal,
) -> bool:
    """
    Credit the wallet, then run the certification check.

    Returns:
        True if the credit certified the user
    """
    await credit_wallet(db, user_id, amount, impact_kg, matured_kg)
    return await check_threshold_upgrade(db, user_id)


async def _mature_tranche(
    db: Prisma, transaction: Transaction, flag: str, kg_field: str
) -> Optional[Decimal]:
    """
    Flag one tranche as matured and move its kg on the user, atomically.

    Returns the kg moved, or None when another run already took the tranche.
    """
    kg = Decimal(getattr(transaction, kg_field))
    async with db.tx() as tx:
        claimed = await tx.transaction.update_many(
            where={"id": transaction.id, flag: False}, data={flag: True}
        )
        if claimed == 0:
            return None
        if kg > 0:
            await tx.user.update(
                where={"id": transaction.userId},
                data={
                    "maturedImpactKg": {"increment": kg},
                    "pendingImpactKg": {"decrement": kg},
                },
            )
    return kg


async def process_matured_impacts(
    db: Prisma, now: Optional[datetime] = None
) -> MaturationResult:
    """
    Move every tranche whose maturation date has passed from pending to
    matured. Each tranche is flagged on its transaction in the same
    database transaction that moves its kg, so it is only counted once.
    """
    now = now or datetime.now(timezone.utc)
    moved_per_user: dict[str, Decimal] = defaultdict(Decimal)
    processed: dict[str, int] = {}

    for flag, matures_at, kg_field in (MID_TERM, FINAL):
        due = await db.transaction.find_many(
            where={
                "paymentStatus": PaymentStatus.COMPLETED,
                flag: False,
                matures_at: {"lte": now},
            }
        )
        processed[flag] = 0
        for transaction in due:
            moved = await _mature_tranche(db, transaction, flag, kg_field)
            if moved is None:
                continue
            processed[flag] += 1
            moved_per_user[transaction.userId] += moved

    total = sum(moved_per_user.values(), Decimal(0))
    logger.info(
        "Maturation processed: %d mid-term, %d final tranches, %s kg",
        processed[MID_TERM[0]],
        processed[FINAL[0]],
        total,
    )
    return MaturationResult(
        processedAt=now,
        midTermProcessed=processed[MID_TERM[0]],
        finalProcessed=processed[FINAL[0]],
        usersUpdated=len(moved_per_user),
        totalMaturedKg=total,
    )
