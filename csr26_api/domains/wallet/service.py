from decimal import Decimal

from prisma.enums import PaymentStatus
from prisma.models import Transaction, User

from prisma import Prisma
from csr26_api.domains.impact.calculations import equivalent_bottles, threshold_progress
from csr26_api.domains.settings.service import get_certification_threshold
from csr26_api.domains.wallet.models import (
    NamedRef,
    UpcomingMaturation,
    WalletHistoryEntry,
    WalletSummary,
)


def upcoming_maturations(transactions: list[Transaction]) -> list[UpcomingMaturation]:
    """Unmatured mid-term and final tranches, soonest first."""
    upcoming = []
    for t in transactions:
        if not t.midTermMatured and t.midTermMaturesAt and Decimal(t.midTermImpactKg) > 0:
            upcoming.append(
                UpcomingMaturation(amount=t.midTermImpactKg, date=t.midTermMaturesAt)
            )
        if not t.finalMatured and t.finalMaturesAt and Decimal(t.finalImpactKg) > 0:
            upcoming.append(
                UpcomingMaturation(amount=t.finalImpactKg, date=t.finalMaturesAt)
            )
    return sorted(upcoming, key=lambda m: m.date)


async def build_wallet_summary(db: Prisma, user: User) -> WalletSummary:
    threshold = await get_certification_threshold(db)
    transaction_count = await db.transaction.count(where={"userId": user.id})
    unmatured = await db.transaction.find_many(
        where={
            "userId": user.id,
            "paymentStatus": PaymentStatus.COMPLETED,
            "OR": [{"midTermMatured": False}, {"finalMatured": False}],
        }
    )
    balance = Decimal(user.walletBalance)
    return WalletSummary(
        balance=balance,
        impactKg=user.walletImpactKg,
        maturedImpactKg=user.maturedImpactKg,
        pendingImpactKg=user.pendingImpactKg,
        bottles=equivalent_bottles(user.walletImpactKg),
        status=user.status,
        transactionCount=transaction_count,
        thresholdProgress=threshold_progress(balance, threshold),
        upcomingMaturations=upcoming_maturations(unmatured),
    )


async def get_wallet_by_email(db: Prisma, email: str) -> WalletSummary:
    """Public lookup for the landing page; unknown emails get an empty wallet."""
    user = await db.user.find_unique(where={"email": email})
    if not user:
        return WalletSummary.empty()
    return await build_wallet_summary(db, user)


async def get_wallet_history(
    db: Prisma, user_id: str, limit: int = 20, offset: int = 0
) -> list[WalletHistoryEntry]:
    transactions = await db.transaction.find_many(
        where={"userId": user_id, "paymentStatus": PaymentStatus.COMPLETED},
        include={"sku": True, "merchant": True},
        order={"createdAt": "desc"},
        take=limit,
        skip=offset,
    )
    return [
        WalletHistoryEntry(
            id=t.id,
            amount=t.amount,
            impactKg=t.impactKg,
            paymentMode=t.paymentMode,
            createdAt=t.createdAt,
            sku=NamedRef(name=t.sku.name) if t.sku else None,
            merchant=NamedRef(name=t.merchant.name) if t.merchant else None,
        )
        for t in transactions
    ]
