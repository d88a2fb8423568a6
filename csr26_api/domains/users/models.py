from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from prisma.enums import UserStatus
from pydantic import BaseModel, Field, field_validator

from csr26_api.domains.auth.models import UserResponse
from csr26_api.domains.transactions.models import TransactionResponse


class UserSortField(str, Enum):
    createdAt = "createdAt"
    email = "email"
    walletBalance = "walletBalance"
    walletImpactKg = "walletImpactKg"
    status = "status"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class UserListItem(UserResponse):
    transactionCount: int = 0


class UserListResponse(BaseModel):
    users: List[UserListItem]
    total: int
    limit: int
    offset: int


class UserDetail(UserListItem):
    transactions: List[TransactionResponse] = []


class UserUpdateRequest(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[date] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    status: Optional[UserStatus] = None
    corsairExported: Optional[bool] = None


class AdjustWalletRequest(BaseModel):
    amount: Decimal = Field(..., description="EUR, negative to debit")
    reason: str

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("Amount must be a non-zero number")
        return value

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reason is required for wallet adjustment")
        return value.strip()
