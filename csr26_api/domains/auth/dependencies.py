# csr26_api/domains/auth/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from prisma.models import Partner, User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.shared.exceptions import InvalidTokenError, NotAuthorizedError

from .tokens import decode_partner_token, decode_user_token

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def get_token(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(
        None, description="Session token, for downloads opened outside the SPA"
    ),
) -> str:
    """
    Extracts the session token from the Authorization header, falling back to
    the ``token`` query parameter.
    """
    resolved = extract_bearer_token(authorization) or token
    if not resolved:
        raise InvalidTokenError("No token provided")
    return resolved


async def get_current_user(
    token: str = Depends(get_token), db: Prisma = Depends(get_db)
) -> User:
    """
    Resolves the authenticated user from a session token.
    """
    payload = decode_user_token(token)
    user = await db.user.find_unique(where={"id": payload.userId})
    if not user:
        raise InvalidTokenError("User not found")
    return user


async def get_optional_user(
    authorization: Optional[str] = Header(None), db: Prisma = Depends(get_db)
) -> Optional[User]:
    """
    Like get_current_user, but anonymous requests and bad tokens yield None.
    """
    token = extract_bearer_token(authorization)
    if not token:
        return None
    try:
        payload = decode_user_token(token)
    except HTTPException as e:
        logger.debug("Ignoring invalid optional token: %s", e.detail)
        return None
    return await db.user.find_unique(where={"id": payload.userId})


async def get_current_partner(
    authorization: Optional[str] = Header(None), db: Prisma = Depends(get_db)
) -> Partner:
    """
    Resolves the partner from a partner portal token.
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise InvalidTokenError("No token provided")
    payload = decode_partner_token(token)
    partner = await db.partner.find_unique(where={"id": payload.partnerId})
    if not partner:
        raise InvalidTokenError("Partner not found")
    if not partner.active:
        raise NotAuthorizedError("Partner account is inactive")
    return partner
