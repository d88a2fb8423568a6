import logging
import secrets
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from prisma.enums import UserRole
from prisma.models import User

from prisma import Prisma
from csr26_api.core.email import EmailService
from csr26_api.core.settings import settings
from csr26_api.domains.auth.models import (
    AuthResponse,
    MagicLinkResponse,
    RegisterRequest,
    UserResponse,
)
from csr26_api.domains.auth.tokens import create_user_token, generate_magic_link_token
from csr26_api.domains.settings.service import (
    ADMIN_EMAIL,
    ADMIN_SECRET_CODE,
    get_setting_value,
)
from csr26_api.shared.exceptions import InvalidDataError, NotFoundError, UserNotFoundError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "firstName",
    "lastName",
    "street",
    "city",
    "postalCode",
    "country",
    "state",
)


def as_datetime(value: Optional[date]) -> Optional[datetime]:
    """Midnight UTC for a calendar date; Prisma DateTime columns need datetimes."""
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def build_auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.from_prisma(user),
        token=create_user_token(user.id, user.email, user.role),
    )


async def get_or_create_user(
    db: Prisma, email: str, profile: Optional[dict[str, Any]] = None
) -> User:
    """
    Find a user by email, creating it when missing.

    Blank values in ``profile`` never overwrite what is already stored.
    """
    profile = {k: v for k, v in (profile or {}).items() if v}
    user = await db.user.find_unique(where={"email": email})
    if user is None:
        logger.info("Creating user %s", email)
        return await db.user.create(data={"email": email, **profile})
    if not profile:
        return user
    updated = await db.user.update(where={"id": user.id}, data=profile)
    return updated or user


class AuthService:
    """Landing page registration, magic link login and admin login."""

    def __init__(self, db: Prisma, email_service: EmailService):
        self.db = db
        self.email_service = email_service

    async def register(self, form: RegisterRequest) -> AuthResponse:
        profile: dict[str, Any] = {
            field: getattr(form, field) for field in PROFILE_FIELDS
        }
        profile["dateOfBirth"] = as_datetime(form.dateOfBirth)
        user = await get_or_create_user(self.db, form.email, profile)
        return build_auth_response(user)

    async def send_magic_link(self, email: str) -> MagicLinkResponse:
        user = await self.db.user.find_unique(where={"email": email})
        if not user:
            raise UserNotFoundError()

        token = generate_magic_link_token()
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.MAGIC_LINK_TTL_MINUTES
        )
        await self.db.magiclink.create(
            data={"userId": user.id, "token": token, "expiresAt": expires_at}
        )
        logger.info("Magic link issued for %s, expires %s", email, expires_at.isoformat())

        delivery = await self.email_service.send_magic_link(
            user.email, token, user.firstName, audience="user"
        )
        return MagicLinkResponse(
            message=delivery.message, magicLinkUrl=delivery.magic_link_url
        )

    async def verify_magic_link(self, token: str) -> AuthResponse:
        magic_link = await self.db.magiclink.find_unique(where={"token": token})
        if not magic_link:
            raise NotFoundError("Invalid or expired token")
        if magic_link.used:
            raise InvalidDataError("Magic link already used")
        if magic_link.expiresAt < datetime.now(timezone.utc):
            raise InvalidDataError("Magic link expired")

        # Consume the link only if no concurrent verify got there first
        consumed = await self.db.magiclink.update_many(
            where={"token": token, "used": False}, data={"used": True}
        )
        if consumed == 0:
            raise InvalidDataError("Magic link already used")

        user = await self.db.user.find_unique(where={"id": magic_link.userId})
        if not user:
            raise UserNotFoundError()
        return build_auth_response(user)

    async def admin_login(self, secret_code: str) -> AuthResponse:
        """
        Exchange the landing page admin secret for an admin session.

        The ADMIN_EMAIL user is created, or promoted, on first use.
        """
        expected = await get_setting_value(self.db, ADMIN_SECRET_CODE)
        if not expected:
            raise InvalidDataError("Admin access not configured")
        if not secrets.compare_digest(secret_code.encode(), expected.encode()):
            logger.warning("Rejected admin login with an invalid secret code")
            raise InvalidDataError("Invalid secret code")

        admin_email = await get_setting_value(self.db, ADMIN_EMAIL)
        admin = await self.db.user.find_unique(where={"email": admin_email})
        if admin is None:
            admin = await self.db.user.create(
                data={
                    "email": admin_email,
                    "firstName": "Admin",
                    "lastName": "User",
                    "role": UserRole.ADMIN,
                }
            )
        elif admin.role != UserRole.ADMIN:
            admin = await self.db.user.update(
                where={"id": admin.id}, data={"role": UserRole.ADMIN}
            )
        if admin is None:
            raise UserNotFoundError()
        return build_auth_response(admin)
