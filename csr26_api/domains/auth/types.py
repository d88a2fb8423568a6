"""Auth domain type definitions for type safety."""

from typing import Literal, Optional

from prisma.enums import UserRole
from pydantic import BaseModel, Field


class UserTokenPayload(BaseModel):
    """Claims carried by a user session token."""

    userId: str = Field(..., description="User ID")
    email: str = Field(..., description="User email address")
    role: UserRole = Field(..., description="Role at the time the token was issued")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")

    model_config = {"extra": "ignore"}


class PartnerTokenPayload(BaseModel):
    """Claims carried by a partner portal token."""

    partnerId: str = Field(..., description="Partner ID")
    email: str = Field(..., description="Partner email address")
    type: Literal["partner"] = "partner"
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")

    model_config = {"extra": "ignore"}
