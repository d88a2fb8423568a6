import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prisma.enums import PaymentMode, PaymentStatus
from prisma.models import Merchant, Sku, Transaction, User
from prisma.types import TransactionInclude, TransactionWhereInput

from prisma import Prisma
from csr26_api.domains.auth.service import get_or_create_user
from csr26_api.domains.gift_codes.exceptions import InvalidGiftCodeError
from csr26_api.domains.gift_codes.service import GiftCodeService
from csr26_api.domains.impact.calculations import (
    ImpactCalculation,
    calculate_impact,
    calculate_maturation_breakdown,
    calculate_weight_based_impact,
    resolve_multiplier,
    resolve_price_per_kg,
)
from csr26_api.domains.impact.service import check_threshold_upgrade, credit_wallet
from csr26_api.domains.settings.service import (
    get_certification_threshold,
    get_default_multiplier,
    get_price_per_kg,
)
from csr26_api.domains.transactions.models import CreateTransactionRequest
from csr26_api.shared.exceptions import (
    InvalidDataError,
    MerchantNotFoundError,
    SkuNotFoundError,
    TransactionNotFoundError,
)
from csr26_api.shared.permissions import Permission, has_permission

logger = logging.getLogger(__name__)

# Modes paid for by the merchant through the monthly invoice
MERCHANT_BILLED_MODES = (PaymentMode.CLAIM, PaymentMode.ALLOCATION)

TRANSACTION_INCLUDE: TransactionInclude = {"user": True, "sku": True, "merchant": True}


@dataclass
class CreatedTransaction:
    transaction: Transaction
    impact: ImpactCalculation


async def _load_sku(db: Prisma, sku_code: Optional[str]) -> Optional[Sku]:
    if not sku_code:
        return None
    sku = await db.sku.find_unique(where={"code": sku_code})
    if not sku or not sku.active:
        raise SkuNotFoundError()
    return sku


async def _load_merchant(db: Prisma, merchant_id: Optional[str]) -> Optional[Merchant]:
    if not merchant_id:
        return None
    merchant = await db.merchant.find_unique(where={"id": merchant_id})
    if not merchant:
        raise MerchantNotFoundError()
    return merchant


async def add_to_merchant_balance(db: Prisma, merchant_id: str, amount: Decimal) -> None:
    await db.merchant.update(
        where={"id": merchant_id},
        data={"currentBalance": {"increment": Decimal(amount)}},
    )


async def create_transaction(
    db: Prisma, request: CreateTransactionRequest, user: Optional[User] = None
) -> CreatedTransaction:
    """
    Record a landing page contribution and apply its side effects.

    CLAIM, GIFT_CARD and ALLOCATION are completed immediately and credited
    to the wallet; PAY stays PENDING until the payment provider confirms it.
    Merchant-billed modes also accrue to the merchant's balance.
    """
    if user is None:
        if not request.email:
            raise InvalidDataError("Email is required for new users")
        user = await get_or_create_user(
            db,
            request.email,
            {"firstName": request.firstName, "lastName": request.lastName},
        )

    sku = await _load_sku(db, request.skuCode)
    payment_mode = request.paymentMode or (sku.paymentMode if sku else None)
    if payment_mode is None:
        raise InvalidDataError("paymentMode is required")
    merchant = await _load_merchant(
        db, request.merchantId or (sku.merchantId if sku else None)
    )
    partner_id = request.partnerId or (merchant.partnerId if merchant else None)

    amount = Decimal(request.amount or 0)
    if payment_mode == PaymentMode.GIFT_CARD:
        if not request.giftCode or not sku:
            raise InvalidGiftCodeError("Gift code and SKU are required")
        await GiftCodeService(db).get_redeemable(request.giftCode, sku.code)
        amount = Decimal(sku.price)
    elif amount <= 0 and sku and Decimal(sku.price) > 0:
        amount = Decimal(sku.price)

    price_per_kg = resolve_price_per_kg(
        merchant.pricePerKg if merchant else None, await get_price_per_kg(db)
    )
    threshold = await get_certification_threshold(db)
    weight_grams = request.weightGrams or (sku.weightGrams if sku else None)
    multiplier: Optional[int] = request.multiplier
    if weight_grams and weight_grams > 0:
        resolved = resolve_multiplier(
            request.multiplier,
            sku.multiplier if sku else None,
            merchant.multiplier if merchant else None,
            await get_default_multiplier(db),
        )
        multiplier = int(resolved)
        impact = calculate_weight_based_impact(
            weight_grams, resolved, price_per_kg, threshold
        )
        if amount <= 0:
            amount = impact.amount
    else:
        impact = calculate_impact(amount, price_per_kg, threshold)

    maturation = calculate_maturation_breakdown(
        impact.impactKg, datetime.now(timezone.utc)
    )
    payment_status = (
        PaymentStatus.PENDING
        if payment_mode == PaymentMode.PAY
        else PaymentStatus.COMPLETED
    )

    # Code claim, ledger row, wallet credit and merchant accrual commit together
    async with db.tx() as tx:
        if payment_mode == PaymentMode.GIFT_CARD and request.giftCode and sku:
            await GiftCodeService(tx).redeem(request.giftCode, sku.code, user.id)

        transaction = await tx.transaction.create(
            data={
                "userId": user.id,
                "skuCode": sku.code if sku else None,
                "amount": amount,
                "impactKg": impact.impactKg,
                "paymentMode": payment_mode,
                "paymentStatus": payment_status,
                "merchantId": merchant.id if merchant else None,
                "partnerId": partner_id,
                "giftCodeUsed": request.giftCode,
                "weightGrams": weight_grams,
                "multiplier": multiplier,
                **maturation.as_transaction_data(),
            },
            include=TRANSACTION_INCLUDE,
        )

        if payment_status == PaymentStatus.COMPLETED:
            await credit_wallet(
                tx, user.id, amount, impact.impactKg, maturation.immediate_kg
            )

        billed = payment_mode in MERCHANT_BILLED_MODES
        if merchant and merchant.monthlyBilling and billed:
            await add_to_merchant_balance(tx, merchant.id, amount)

    if payment_status == PaymentStatus.COMPLETED:
        await check_threshold_upgrade(db, user.id)

    logger.info(
        "Created %s transaction %s for user %s (%s EUR, %s kg)",
        payment_mode,
        transaction.id,
        user.id,
        amount,
        impact.impactKg,
    )
    return CreatedTransaction(transaction=transaction, impact=impact)


async def complete_pending_transaction(
    db: Prisma, transaction: Transaction, stripe_payment_id: Optional[str] = None
) -> bool:
    """
    Move a PENDING transaction to COMPLETED and credit the wallet.

    The status flip is conditional on the row still being PENDING, so a
    transaction is credited at most once. The flip and the credit commit
    together, so a failed credit leaves the row PENDING for a retry. Returns
    False when the transaction was already processed.
    """
    data: dict = {"paymentStatus": PaymentStatus.COMPLETED}
    if stripe_payment_id:
        data["stripePaymentId"] = stripe_payment_id
    async with db.tx() as tx:
        updated = await tx.transaction.update_many(
            where={"id": transaction.id, "paymentStatus": PaymentStatus.PENDING},
            data=data,
        )
        if updated == 0:
            logger.info(
                "Transaction %s already processed, skipping credit", transaction.id
            )
            return False

        await credit_wallet(
            tx,
            transaction.userId,
            Decimal(transaction.amount),
            Decimal(transaction.impactKg),
            Decimal(transaction.immediateImpactKg),
        )

    await check_threshold_upgrade(db, transaction.userId)
    return True


async def list_user_transactions(
    db: Prisma, user_id: str, limit: int = 20, offset: int = 0
) -> tuple[list[Transaction], int]:
    where: TransactionWhereInput = {"userId": user_id}
    transactions = await db.transaction.find_many(
        where=where,
        include={"sku": True, "merchant": True},
        order={"createdAt": "desc"},
        take=limit,
        skip=offset,
    )
    return transactions, await db.transaction.count(where=where)


async def list_transactions(
    db: Prisma,
    payment_mode: Optional[PaymentMode] = None,
    payment_status: Optional[PaymentStatus] = None,
    merchant_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Transaction], int]:
    """All transactions, newest first, with optional filters."""
    where: TransactionWhereInput = {}
    if payment_mode:
        where["paymentMode"] = payment_mode
    if payment_status:
        where["paymentStatus"] = payment_status
    if merchant_id:
        where["merchantId"] = merchant_id
    if start_date or end_date:
        created_at: dict = {}
        if start_date:
            created_at["gte"] = start_date
        if end_date:
            created_at["lte"] = end_date
        where["createdAt"] = created_at  # type: ignore[typeddict-item]
    if search:
        where["user"] = {
            "is": {
                "OR": [
                    {"email": {"contains": search, "mode": "insensitive"}},
                    {"firstName": {"contains": search, "mode": "insensitive"}},
                    {"lastName": {"contains": search, "mode": "insensitive"}},
                ]
            }
        }

    transactions = await db.transaction.find_many(
        where=where,
        include=TRANSACTION_INCLUDE,
        order={"createdAt": "desc"},
        take=limit,
        skip=offset,
    )
    return transactions, await db.transaction.count(where=where)


async def get_transaction_for_user(db: Prisma, transaction_id: str, user: User) -> Transaction:
    """
    A transaction visible to ``user``. Other users' transactions are
    reported as missing rather than forbidden.
    """
    transaction = await db.transaction.find_unique(
        where={"id": transaction_id}, include=TRANSACTION_INCLUDE
    )
    if not transaction:
        raise TransactionNotFoundError()
    if transaction.userId != user.id and not has_permission(
        user.role, Permission.VIEW_ALL_TRANSACTIONS
    ):
        raise TransactionNotFoundError()
    return transaction


async def update_transaction_status(
    db: Prisma, transaction_id: str, payment_status: PaymentStatus
) -> Transaction:
    """
    Admin status override. PENDING → COMPLETED goes through the same
    single-credit path as a confirmed payment.
    """
    transaction = await db.transaction.find_unique(where={"id": transaction_id})
    if not transaction:
        raise TransactionNotFoundError()

    if (
        transaction.paymentStatus == PaymentStatus.PENDING
        and payment_status == PaymentStatus.COMPLETED
    ):
        await complete_pending_transaction(db, transaction)
    elif transaction.paymentStatus != payment_status:
        await db.transaction.update(
            where={"id": transaction_id}, data={"paymentStatus": payment_status}
        )
    logger.info(
        "Transaction %s status %s -> %s",
        transaction_id,
        transaction.paymentStatus,
        payment_status,
    )

    updated = await db.transaction.find_unique(
        where={"id": transaction_id}, include=TRANSACTION_INCLUDE
    )
    if not updated:
        raise TransactionNotFoundError()
    return updated


async def create_manual_transaction(
    db: Prisma,
    email: str,
    amount: Decimal,
    payment_mode: PaymentMode,
    reason: str,
) -> Transaction:
    """Pre-completed transaction entered by an admin, tagged with the reason."""
    user = await get_or_create_user(db, email)
    impact = calculate_impact(
        amount, await get_price_per_kg(db), await get_certification_threshold(db)
    )
    maturation = calculate_maturation_breakdown(
        impact.impactKg, datetime.now(timezone.utc)
    )
    async with db.tx() as tx:
        transaction = await tx.transaction.create(
            data={
                "userId": user.id,
                "amount": amount,
                "impactKg": impact.impactKg,
                "paymentMode": payment_mode,
                "paymentStatus": PaymentStatus.COMPLETED,
                "masterId": f"MANUAL:{reason}",
                **maturation.as_transaction_data(),
            },
            include=TRANSACTION_INCLUDE,
        )
        await credit_wallet(
            tx, user.id, amount, impact.impactKg, maturation.immediate_kg
        )
    await check_threshold_upgrade(db, user.id)
    logger.info("Manual transaction %s for %s: %s", transaction.id, email, reason)
    return transaction
