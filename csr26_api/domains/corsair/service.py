import csv
import io
import logging
import secrets
import time
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from prisma.enums import PaymentStatus, UserStatus
from prisma.models import User

from prisma import Prisma
from csr26_api.domains.corsair.models import (
    AttributionIds,
    CorsairBatchExportResult,
    CorsairExportRecord,
    CorsairExportStats,
)
from csr26_api.domains.settings.service import get_certification_threshold

logger = logging.getLogger(__name__)

BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

CSV_HEADERS = [
    "Corsair ID",
    "Email",
    "First Name",
    "Last Name",
    "Date of Birth",
    "Street",
    "City",
    "Postal Code",
    "Country",
    "State",
    "Total Impact (kg)",
    "Matured Impact (kg)",
    "Pending Impact (kg)",
    "Wallet Balance (EUR)",
    "Certification Date",
    "Transaction Count",
    "First Transaction Date",
    "Last Transaction Date",
    "Merchant IDs",
    "Partner IDs",
]

# Completed transactions, oldest first, for attribution and date ranges
TRANSACTIONS_INCLUDE = {
    "transactions": {
        "where": {"paymentStatus": PaymentStatus.COMPLETED},
        "order_by": {"createdAt": "asc"},
    }
}


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return "".join(reversed(digits))


def generate_corsair_id() -> str:
    """``CSR26-<base36 ms timestamp>-<6 random chars>``, upper case."""
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36) for _ in range(6))
    return f"CSR26-{timestamp}-{suffix}".upper()


def format_date(value: Optional[datetime | date]) -> Optional[str]:
    if value is None:
        return None
    return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def build_export_record(
    user: User, corsair_id: str, certification_date: str
) -> CorsairExportRecord:
    transactions = user.transactions or []
    first = transactions[0] if transactions else None
    last = transactions[-1] if transactions else None
    return CorsairExportRecord(
        corsairId=corsair_id,
        email=user.email,
        firstName=user.firstName,
        lastName=user.lastName,
        dateOfBirth=format_date(user.dateOfBirth),
        street=user.street,
        city=user.city,
        postalCode=user.postalCode,
        country=user.country,
        state=user.state,
        totalImpactKg=Decimal(user.walletImpactKg),
        maturedImpactKg=Decimal(user.maturedImpactKg),
        pendingImpactKg=Decimal(user.pendingImpactKg),
        walletBalance=Decimal(user.walletBalance),
        certificationDate=certification_date,
        transactionCount=len(transactions),
        firstTransactionDate=format_date(first.createdAt) if first else None,
        lastTransactionDate=format_date(last.createdAt) if last else None,
        attributionIds=AttributionIds(
            merchantIds=_unique(t.merchantId for t in transactions),
            partnerIds=_unique(t.partnerId for t in transactions),
        ),
    )


def _fixed(value: Decimal, places: str) -> str:
    return str(Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def convert_to_csv(records: List[CorsairExportRecord]) -> str:
    """
    Render records in the Corsair Connect column layout.

    Impact columns carry four decimals, the balance two. Attribution ids are
    joined with ``;``. An empty export is an empty string.
    """
    if not records:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(
            [
                record.corsairId,
                record.email,
                record.firstName or "",
                record.lastName or "",
                record.dateOfBirth or "",
                record.street or "",
                record.city or "",
                record.postalCode or "",
                record.country or "",
                record.state or "",
                _fixed(record.totalImpactKg, "0.0001"),
                _fixed(record.maturedImpactKg, "0.0001"),
                _fixed(record.pendingImpactKg, "0.0001"),
                _fixed(record.walletBalance, "0.01"),
                record.certificationDate,
                str(record.transactionCount),
                record.firstTransactionDate or "",
                record.lastTransactionDate or "",
                ";".join(record.attributionIds.merchantIds),
                ";".join(record.attributionIds.partnerIds),
            ]
        )
    return buffer.getvalue().removesuffix("\n")


class CorsairExportService:
    """Exports certified users to Corsair Connect and tracks what was sent."""

    def __init__(self, db: Prisma):
        self.db = db

    async def _mark_exported(self, user_id: str, corsair_id: str) -> None:
        await self.db.user.update(
            where={"id": user_id},
            data={"corsairId": corsair_id, "corsairExported": True},
        )

    async def export_user(self, user_id: str) -> Optional[CorsairExportRecord]:
        """
        Export a single user at the moment they become certified.

        Returns:
            The export record, or None when the user is missing, not
            certified, or already exported
        """
        user = await self.db.user.find_unique(
            where={"id": user_id},
            include=TRANSACTIONS_INCLUDE,  # type: ignore[arg-type]
        )
        if not user:
            logger.error("Corsair export: user not found %s", user_id)
            return None
        if user.status != UserStatus.CERTIFIED:
            logger.info("Corsair export: user %s not certified, skipping", user_id)
            return None
        if user.corsairExported and user.corsairId:
            logger.info(
                "Corsair export: user %s already exported as %s", user_id, user.corsairId
            )
            return None

        corsair_id = generate_corsair_id()
        record = build_export_record(user, corsair_id, date.today().isoformat())
        await self._mark_exported(user_id, corsair_id)
        logger.info("Corsair export: user %s exported as %s", user_id, corsair_id)
        return record

    async def export_pending_certified_users(self) -> CorsairBatchExportResult:
        """Export every certified user that has not been exported yet."""
        users = await self.db.user.find_many(
            where={"status": UserStatus.CERTIFIED, "corsairExported": False},
            include=TRANSACTIONS_INCLUDE,  # type: ignore[arg-type]
        )
        today = date.today().isoformat()
        records = []
        for user in users:
            corsair_id = user.corsairId or generate_corsair_id()
            records.append(build_export_record(user, corsair_id, today))
            await self._mark_exported(user.id, corsair_id)

        logger.info("Corsair batch export completed: %d users", len(records))
        return CorsairBatchExportResult(
            exportDate=datetime.now(timezone.utc),
            recordCount=len(records),
            records=records,
        )

    async def export_all_certified_users(self) -> CorsairBatchExportResult:
        """
        Full report of certified users. Existing Corsair ids are reused and
        users not yet exported are marked as exported.
        """
        users = await self.db.user.find_many(
            where={"status": UserStatus.CERTIFIED},
            include=TRANSACTIONS_INCLUDE,  # type: ignore[arg-type]
        )
        records = []
        for user in users:
            corsair_id = user.corsairId or generate_corsair_id()
            certification_date = format_date(user.updatedAt) or date.today().isoformat()
            records.append(build_export_record(user, corsair_id, certification_date))
            if not user.corsairExported:
                await self._mark_exported(user.id, corsair_id)

        logger.info("Corsair full export completed: %d certified users", len(records))
        return CorsairBatchExportResult(
            exportDate=datetime.now(timezone.utc),
            recordCount=len(records),
            records=records,
        )

    async def get_export_stats(self) -> CorsairExportStats:
        threshold = await get_certification_threshold(self.db)
        total_certified = await self.db.user.count(
            where={"status": UserStatus.CERTIFIED}
        )
        total_exported = await self.db.user.count(
            where={"status": UserStatus.CERTIFIED, "corsairExported": True}
        )
        return CorsairExportStats(
            totalCertified=total_certified,
            totalExported=total_exported,
            pendingExport=total_certified - total_exported,
            threshold=threshold,
        )
