from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from prisma.enums import PaymentMode, PaymentStatus
from prisma.models import Transaction
from pydantic import BaseModel, EmailStr, Field, field_validator

from csr26_api.domains.impact.calculations import ImpactCalculation


class TransactionUserSummary(BaseModel):
    id: str
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class TransactionSkuSummary(BaseModel):
    code: str
    name: str
    paymentMode: PaymentMode
    price: Decimal


class TransactionMerchantSummary(BaseModel):
    id: str
    name: str


class TransactionResponse(BaseModel):
    id: str
    userId: str
    skuCode: Optional[str] = None
    amount: Decimal
    impactKg: Decimal
    paymentMode: PaymentMode
    paymentStatus: PaymentStatus
    stripePaymentId: Optional[str] = None
    masterId: str
    partnerId: Optional[str] = None
    merchantId: Optional[str] = None
    giftCodeUsed: Optional[str] = None
    weightGrams: Optional[int] = None
    multiplier: Optional[int] = None
    immediateImpactKg: Decimal
    midTermImpactKg: Decimal
    finalImpactKg: Decimal
    midTermMaturesAt: Optional[datetime] = None
    finalMaturesAt: Optional[datetime] = None
    midTermMatured: bool
    finalMatured: bool
    createdAt: datetime
    user: Optional[TransactionUserSummary] = None
    sku: Optional[TransactionSkuSummary] = None
    merchant: Optional[TransactionMerchantSummary] = None

    @classmethod
    def from_prisma(cls, transaction: Transaction) -> "TransactionResponse":
        user = getattr(transaction, "user", None)
        sku = getattr(transaction, "sku", None)
        merchant = getattr(transaction, "merchant", None)
        return cls(
            id=transaction.id,
            userId=transaction.userId,
            skuCode=transaction.skuCode,
            amount=transaction.amount,
            impactKg=transaction.impactKg,
            paymentMode=transaction.paymentMode,
            paymentStatus=transaction.paymentStatus,
            stripePaymentId=transaction.stripePaymentId,
            masterId=transaction.masterId,
            partnerId=transaction.partnerId,
            merchantId=transaction.merchantId,
            giftCodeUsed=transaction.giftCodeUsed,
            weightGrams=transaction.weightGrams,
            multiplier=transaction.multiplier,
            immediateImpactKg=transaction.immediateImpactKg,
            midTermImpactKg=transaction.midTermImpactKg,
            finalImpactKg=transaction.finalImpactKg,
            midTermMaturesAt=transaction.midTermMaturesAt,
            finalMaturesAt=transaction.finalMaturesAt,
            midTermMatured=transaction.midTermMatured,
            finalMatured=transaction.finalMatured,
            createdAt=transaction.createdAt,
            user=(
                TransactionUserSummary(
                    id=user.id,
                    email=user.email,
                    firstName=user.firstName,
                    lastName=user.lastName,
                )
                if user
                else None
            ),
            sku=(
                TransactionSkuSummary(
                    code=sku.code,
                    name=sku.name,
                    paymentMode=sku.paymentMode,
                    price=sku.price,
                )
                if sku
                else None
            ),
            merchant=(
                TransactionMerchantSummary(id=merchant.id, name=merchant.name)
                if merchant
                else None
            ),
        )


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int


class TransactionCreatedResponse(TransactionResponse):
    impact: ImpactCalculation


class CreateTransactionRequest(BaseModel):
    """
    Landing page submission. ``email`` is required when the caller is not
    signed in; amount may be omitted for weight-based merchant claims.
    """

    paymentMode: Optional[PaymentMode] = None
    skuCode: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    giftCode: Optional[str] = None
    merchantId: Optional[str] = None
    partnerId: Optional[str] = None
    weightGrams: Optional[int] = Field(None, ge=0)
    multiplier: Optional[int] = Field(None, ge=0)
    email: Optional[EmailStr] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class UpdateTransactionStatusRequest(BaseModel):
    paymentStatus: PaymentStatus


class ManualTransactionRequest(BaseModel):
    email: EmailStr
    amount: Decimal = Field(..., gt=0)
    paymentMode: PaymentMode
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reason is required for audit trail")
        return value.strip()
