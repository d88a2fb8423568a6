import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt
from prisma.enums import UserRole
from pydantic import ValidationError

from csr26_api.core.settings import settings
from csr26_api.shared.exceptions import InvalidTokenError

from .types import PartnerTokenPayload, UserTokenPayload

ALGORITHM = "HS256"


def _encode(claims: dict[str, Any]) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def _decode(token: str) -> dict[str, Any]:
    try:
        return dict(jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM]))
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("Token expired")
    except jwt.PyJWTError:
        raise InvalidTokenError("Invalid token")


def create_user_token(user_id: str, email: str, role: UserRole | str) -> str:
    role_value = role.value if isinstance(role, Enum) else role
    return _encode({"userId": user_id, "email": email, "role": role_value})


def create_partner_token(partner_id: str, email: str) -> str:
    return _encode({"partnerId": partner_id, "email": email, "type": "partner"})


def decode_user_token(token: str) -> UserTokenPayload:
    """Verify a user session token and return its claims."""
    try:
        return UserTokenPayload(**_decode(token))
    except ValidationError:
        raise InvalidTokenError("Invalid token")


def decode_partner_token(token: str) -> PartnerTokenPayload:
    """Verify a partner portal token and return its claims."""
    claims = _decode(token)
    if claims.get("type") != "partner":
        raise InvalidTokenError("Partner authentication required")
    try:
        return PartnerTokenPayload(**claims)
    except ValidationError:
        raise InvalidTokenError("Invalid token")


def generate_magic_link_token() -> str:
    """64 hex characters drawn from 32 random bytes."""
    return secrets.token_hex(32)
