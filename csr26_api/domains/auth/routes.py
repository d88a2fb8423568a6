# csr26_api/domains/auth/routes.py
from fastapi import APIRouter, Depends, status
from prisma.models import User

from prisma import Prisma
from csr26_api.core.database import get_db
from csr26_api.core.email import EmailService, get_email_service
from csr26_api.domains.auth.dependencies import get_current_user
from csr26_api.domains.auth.models import (
    AdminLoginRequest,
    AuthResponse,
    CurrentUserResponse,
    MagicLinkRequest,
    MagicLinkResponse,
    RegisterRequest,
    UserResponse,
)
from csr26_api.domains.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service(
    db: Prisma = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db, email_service)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="register",
)
async def register(
    body: RegisterRequest, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    return await service.register(body)


@router.post(
    "/magic-link",
    response_model=MagicLinkResponse,
    response_model_exclude_none=True,
    operation_id="sendMagicLink",
)
async def send_magic_link(
    body: MagicLinkRequest, service: AuthService = Depends(get_auth_service)
) -> MagicLinkResponse:
    return await service.send_magic_link(body.email)


@router.get("/verify/{token}", response_model=AuthResponse, operation_id="verifyMagicLink")
async def verify_magic_link(
    token: str, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    return await service.verify_magic_link(token)


@router.get("/me", response_model=CurrentUserResponse, operation_id="getCurrentUser")
async def get_me(user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserResponse.from_prisma(user))


@router.post("/admin-login", response_model=AuthResponse, operation_id="adminLogin")
async def admin_login(
    body: AdminLoginRequest, service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    return await service.admin_login(body.secretCode)
