# csr26_api/domains/auth/models.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from prisma.enums import UserRole, UserStatus
from prisma.models import User
from pydantic import BaseModel, EmailStr, Field


class UserResponse(BaseModel):
    id: str
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[datetime] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    role: UserRole
    status: UserStatus
    walletBalance: Decimal
    walletImpactKg: Decimal
    maturedImpactKg: Decimal
    pendingImpactKg: Decimal
    corsairExported: bool
    corsairId: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_prisma(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            firstName=user.firstName,
            lastName=user.lastName,
            dateOfBirth=user.dateOfBirth,
            street=user.street,
            city=user.city,
            postalCode=user.postalCode,
            country=user.country,
            state=user.state,
            role=user.role,
            status=user.status,
            walletBalance=user.walletBalance,
            walletImpactKg=user.walletImpactKg,
            maturedImpactKg=user.maturedImpactKg,
            pendingImpactKg=user.pendingImpactKg,
            corsairExported=user.corsairExported,
            corsairId=user.corsairId,
            createdAt=user.createdAt,
            updatedAt=user.updatedAt,
        )


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class CurrentUserResponse(BaseModel):
    user: UserResponse


class RegisterRequest(BaseModel):
    """Landing page form data."""

    email: EmailStr
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[date] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None


class MagicLinkRequest(BaseModel):
    email: EmailStr


class MagicLinkResponse(BaseModel):
    message: str
    magicLinkUrl: Optional[str] = None


class AdminLoginRequest(BaseModel):
    secretCode: str = Field(..., min_length=1)
