"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent

_INSECURE_SECRET_MARKERS = {
    "",
    "dev-access-secret-change-in-production-use-openssl-rand-hex-32",
    "dev-refresh-secret-change-in-production-use-openssl-rand-hex-32",
    "change-me",
}


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "Accounts Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database (PostgreSQL)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "accounts_db"
    POSTGRES_USER: str = "accounts"
    POSTGRES_PASSWORD: str = "accounts"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    # Tokens
    ACCESS_TOKEN_SECRET: str = "dev-access-secret-change-in-production-use-openssl-rand-hex-32"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_SECRET: str = "dev-refresh-secret-change-in-production-use-openssl-rand-hex-32"
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    ALGORITHM: str = "HS256"

    # Session policy
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE: bool = True
    COOKIE_SECURE: bool = True

    # Media hosting (Cloudinary)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Uploads
    TEMP_DIR: str = ""
    MAX_UPLOAD_SIZE_MB: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:3000","http://example.com"]
            CORS_ORIGINS=http://localhost:3000,http://example.com
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed]
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed if str(origin).strip()]

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    def _resolve_path(self, value: str, default: str) -> str:
        """Resolve path - use absolute if empty or relative"""
        if not value or value.startswith(".."):
            return str(_BASE_DIR.parent / default)
        return value

    def get_temp_dir(self) -> str:
        return self._resolve_path(self.TEMP_DIR, "temp")

    def get_log_file(self) -> str:
        return self._resolve_path(self.LOG_FILE, str(Path("logs") / "app.log"))

    @property
    def access_token_ttl_seconds(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @property
    def refresh_token_ttl_seconds(self) -> int:
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Validate runtime security defaults in production.

        Raises:
            ValueError: If insecure defaults are detected.
        """
        if self.ENVIRONMENT.lower() != "production":
            return

        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET"):
            secret = getattr(self, name)
            if secret in _INSECURE_SECRET_MARKERS or len(secret) < 32:
                raise ValueError(
                    f"Insecure {name} for production. Use a strong key (e.g. `openssl rand -hex 32`)."
                )

        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")

        if not (self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET):
            raise ValueError("Cloudinary credentials are required in production.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
