from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./claims.db"

    # Auth
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Signature links
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    SIGNATURE_TOKEN_TTL_HOURS: int = 24
    TOKEN_RETENTION_DAYS: int = 30
    TOKEN_CLEANUP_INTERVAL_HOURS: int = 24

    # Signed documents
    DOCUMENT_STORAGE_DIR: str = "documents"
    MAX_PDF_SIZE: int = 10 * 1024 * 1024
    # "1:<base64 key>,2:<base64 key>"
    DOCUMENT_ENCRYPTION_KEYS: Optional[str] = None
    DOCUMENT_ENCRYPTION_KEY_VERSION: Optional[int] = None

    # SMTP
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_FROM_EMAIL: str = "noreply@whitepointer.com.au"
    SMTP_FROM_NAME: str = "White Pointer Recoveries"
    SMTP_TIMEOUT_SECONDS: int = 15

    # Seed admin account created on first start
    SEED_ADMIN_EMAIL: Optional[str] = None
    SEED_ADMIN_PASSWORD: Optional[str] = None

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    @field_validator("PUBLIC_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
