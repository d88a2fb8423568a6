import csv
import io
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prisma.enums import PaymentMode, PaymentStatus, UserStatus
from prisma.models import User
from prisma.types import UserWhereInput

from prisma import Prisma
from csr26_api.domains.auth.models import UserResponse
from csr26_api.domains.auth.service import as_datetime
from csr26_api.domains.impact.calculations import calculate_impact, quantize_eur
from csr26_api.domains.impact.service import check_threshold_upgrade, credit_wallet
from csr26_api.domains.settings.service import (
    get_certification_threshold,
    get_price_per_kg,
)
from csr26_api.domains.transactions.models import TransactionResponse
from csr26_api.domains.users.models import (
    SortOrder,
    UserDetail,
    UserListItem,
    UserListResponse,
    UserSortField,
    UserUpdateRequest,
)
from csr26_api.shared.exceptions import UserNotFoundError

logger = logging.getLogger(__name__)

ADJUSTMENT_PREFIX = "ADMIN_ADJUSTMENT"

CSV_HEADERS = [
    "ID",
    "Email",
    "First Name",
    "Last Name",
    "Date of Birth",
    "Street",
    "City",
    "Postal Code",
    "Country",
    "State",
    "Wallet Balance (EUR)",
    "Impact (kg)",
    "Status",
    "Transaction Count",
    "Corsair Exported",
    "Created At",
]


def _search_filter(search: str) -> UserWhereInput:
    return {
        "OR": [
            {"email": {"contains": search, "mode": "insensitive"}},
            {"firstName": {"contains": search, "mode": "insensitive"}},
            {"lastName": {"contains": search, "mode": "insensitive"}},
        ]
    }


async def _with_count(db: Prisma, user: User) -> UserListItem:
    return UserListItem(
        **UserResponse.from_prisma(user).model_dump(),
        transactionCount=await db.transaction.count(where={"userId": user.id}),
    )


async def list_users(
    db: Prisma,
    search: Optional[str] = None,
    status: Optional[UserStatus] = None,
    sort_by: UserSortField = UserSortField.createdAt,
    sort_order: SortOrder = SortOrder.desc,
    limit: int = 50,
    offset: int = 0,
) -> UserListResponse:
    where: UserWhereInput = _search_filter(search) if search else {}
    if status:
        where["status"] = status

    total = await db.user.count(where=where)
    users = await db.user.find_many(
        where=where,
        order={sort_by.value: sort_order.value},  # type: ignore[misc]
        take=limit,
        skip=offset,
    )
    return UserListResponse(
        users=[await _with_count(db, u) for u in users],
        total=total,
        limit=limit,
        offset=offset,
    )


async def get_user_detail(db: Prisma, user_id: str) -> UserDetail:
    """User with its ten most recent transactions."""
    user = await db.user.find_unique(where={"id": user_id})
    if not user:
        raise UserNotFoundError()
    transactions = await db.transaction.find_many(
        where={"userId": user_id},
        include={"sku": True, "merchant": True},
        order={"createdAt": "desc"},
        take=10,
    )
    item = await _with_count(db, user)
    return UserDetail(
        **item.model_dump(),
        transactions=[TransactionResponse.from_prisma(t) for t in transactions],
    )


async def update_user(db: Prisma, user_id: str, data: UserUpdateRequest) -> User:
    if not await db.user.find_unique(where={"id": user_id}):
        raise UserNotFoundError()
    update = data.model_dump(exclude_unset=True)
    if "dateOfBirth" in update:
        update["dateOfBirth"] = as_datetime(data.dateOfBirth)
    user = await db.user.update(where={"id": user_id}, data=update)
    if user is None:
        raise UserNotFoundError()
    return user


async def adjust_wallet(db: Prisma, user_id: str, amount: Decimal, reason: str) -> UserListItem:
    """
    Manual wallet correction by an admin.

    Recorded as a completed CLAIM whose impact is fully matured, so it never
    enters the maturation schedule. The reason is kept on the transaction.
    """
    if not await db.user.find_unique(where={"id": user_id}):
        raise UserNotFoundError()

    impact = calculate_impact(
        amount, await get_price_per_kg(db), await get_certification_threshold(db)
    )
    async with db.tx() as tx:
        await tx.transaction.create(
            data={
                "userId": user_id,
                "amount": amount,
                "impactKg": impact.impactKg,
                "paymentMode": PaymentMode.CLAIM,
                "paymentStatus": PaymentStatus.COMPLETED,
                "giftCodeUsed": f"{ADJUSTMENT_PREFIX}: {reason}",
                "immediateImpactKg": impact.impactKg,
                "midTermMatured": True,
                "finalMatured": True,
            }
        )
        await credit_wallet(tx, user_id, amount, impact.impactKg, impact.impactKg)
    await check_threshold_upgrade(db, user_id)
    logger.info("Wallet of user %s adjusted by %s EUR: %s", user_id, amount, reason)

    user = await db.user.find_unique(where={"id": user_id})
    if not user:
        raise UserNotFoundError()
    return await _with_count(db, user)


async def export_users_csv(
    db: Prisma,
    status: Optional[UserStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> str:
    where: UserWhereInput = {}
    if status:
        where["status"] = status
    if start_date or end_date:
        created_at: dict = {}
        if start_date:
            created_at["gte"] = start_date
        if end_date:
            created_at["lte"] = end_date
        where["createdAt"] = created_at  # type: ignore[typeddict-item]

    users = await db.user.find_many(where=where, order={"createdAt": "desc"})

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for user in users:
        writer.writerow(
            [
                user.id,
                user.email,
                user.firstName or "",
                user.lastName or "",
                user.dateOfBirth.date().isoformat() if user.dateOfBirth else "",
                user.street or "",
                user.city or "",
                user.postalCode or "",
                user.country or "",
                user.state or "",
                f"{quantize_eur(Decimal(user.walletBalance))}",
                f"{quantize_eur(Decimal(user.walletImpactKg))}",
                UserStatus(user.status).value,
                await db.transaction.count(where={"userId": user.id}),
                "Yes" if user.corsairExported else "No",
                user.createdAt.astimezone(timezone.utc).isoformat(),
            ]
        )
    logger.info("Exported %d users to CSV", len(users))
    return buffer.getvalue().rstrip("\n")


def csv_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    return f"csr26-users-{today.date().isoformat()}.csv"
