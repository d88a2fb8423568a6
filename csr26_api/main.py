import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prisma.errors import (
    DataError,
    ForeignKeyViolationError,
    MissingRequiredValueError,
    RecordNotFoundError,
    UniqueViolationError,
)

from csr26_api.core.database import prisma
from csr26_api.core.settings import settings
from csr26_api.domains.admin.routes import router as admin_router
from csr26_api.domains.auth.routes import router as auth_router
from csr26_api.domains.gift_codes.routes import router as gift_codes_router
from csr26_api.domains.merchants.routes import router as merchants_router
from csr26_api.domains.partners.routes import router as partners_router
from csr26_api.domains.payments.routes import router as payments_router
from csr26_api.domains.settings.routes import router as settings_router
from csr26_api.domains.skus.routes import router as skus_router
from csr26_api.domains.transactions.routes import router as transactions_router
from csr26_api.domains.users.routes import router as users_router
from csr26_api.domains.wallet.routes import router as wallet_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await prisma.connect()
    logger.info("CSR26 API started (%s)", settings.ENVIRONMENT)
    yield
    # Shutdown
    await prisma.disconnect()


app = FastAPI(
    title="CSR26 API",
    description="Plastic-impact ledger: contributions, wallets, merchant billing and certification exports",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(UniqueViolationError)
async def unique_violation_handler(request: Request, exc: UniqueViolationError) -> JSONResponse:
    logger.warning("Unique constraint violated on %s: %s", request.url.path, exc)
    return _error(status.HTTP_409_CONFLICT, "A record with this value already exists")


@app.exception_handler(ForeignKeyViolationError)
@app.exception_handler(DataError)
@app.exception_handler(MissingRequiredValueError)
async def invalid_data_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Invalid data on %s: %s", request.url.path, exc)
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid data provided")


@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "Record not found")


app.include_router(auth_router, prefix="/api")
app.include_router(settings_router, prefix="/api")
app.include_router(skus_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")
app.include_router(wallet_router, prefix="/api")
app.include_router(gift_codes_router, prefix="/api")
app.include_router(merchants_router, prefix="/api")
app.include_router(partners_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "CSR26 API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
