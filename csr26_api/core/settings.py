from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "development-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Runtime
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str | None = None

    # Auth
    JWT_SECRET: str | None = None
    JWT_EXPIRES_DAYS: int = 7
    MAGIC_LINK_TTL_MINUTES: int = 15
    ADMIN_ACCESS_CODE: str = "ADMIN-ACCESS-2026"

    # Application URLs
    FRONTEND_URL: str = "http://localhost:5173"

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None

    # SMTP configuration for magic link emails
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False  # implicit TLS, usually port 465
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    EMAIL_FROM: str = "noreply@impactcsr26.it"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def require_production_secret(self) -> "Settings":
        if self.is_production and not self.JWT_SECRET:
            raise ValueError("JWT_SECRET environment variable is required in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def jwt_secret(self) -> str:
        """Signing secret for user and partner tokens."""
        return self.JWT_SECRET or DEV_JWT_SECRET


settings = Settings()
