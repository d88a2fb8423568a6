from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from prisma.enums import PaymentMode, UserStatus
from pydantic import BaseModel


class UpcomingMaturation(BaseModel):
    amount: Decimal
    date: datetime


class WalletSummary(BaseModel):
    balance: Decimal
    impactKg: Decimal
    maturedImpactKg: Decimal
    pendingImpactKg: Decimal
    bottles: int
    status: UserStatus
    transactionCount: int
    thresholdProgress: float
    upcomingMaturations: List[UpcomingMaturation] = []

    @classmethod
    def empty(cls) -> "WalletSummary":
        return cls(
            balance=Decimal(0),
            impactKg=Decimal(0),
            maturedImpactKg=Decimal(0),
            pendingImpactKg=Decimal(0),
            bottles=0,
            status=UserStatus.ACCUMULATION,
            transactionCount=0,
            thresholdProgress=0.0,
        )


class NamedRef(BaseModel):
    name: str


class WalletHistoryEntry(BaseModel):
    id: str
    amount: Decimal
    impactKg: Decimal
    paymentMode: PaymentMode
    createdAt: datetime
    sku: Optional[NamedRef] = None
    merchant: Optional[NamedRef] = None
