# backend/app/core/settings.py
"""
OrderDesk - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "OrderDesk"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Backing Order Store
    # ===================
    STORE_API_URL: str = Field(
        default="http://localhost:5000",
        description="Base URL of the commerce backend that owns orders",
    )
    STORE_API_TOKEN: Optional[str] = Field(default=None, description="Bearer token for the store")
    STORE_TIMEOUT_SECONDS: float = Field(
        default=120.0, gt=0, description="Fixed timeout for every store request (no retries)"
    )

    @field_validator("STORE_API_URL")
    @classmethod
    def strip_api_suffix(cls, v: str) -> str:
        """Accept the URL with or without a trailing /api/v1; the client re-appends it."""
        v = v.strip().rstrip("/")
        if v.endswith("/api/v1"):
            v = v[: -len("/api/v1")]
        return v.rstrip("/")

    @property
    def store_api_base(self) -> str:
        return f"{self.STORE_API_URL}/api/v1"

    # ===================
    # Order Workflow
    # ===================
    ORDER_PAGE_SIZE: int = Field(default=20, ge=1, le=1000)
    ORDER_LIST_SORT: str = Field(default="new_arrival")
    ORDER_CACHE_TTL_SECONDS: float = Field(
        default=300.0, ge=0, description="Cached views older than this are refetched on read"
    )
    ORDER_CACHE_MAX_ENTRIES: int = Field(
        default=256, ge=1, description="Least recently read cached views are evicted past this"
    )
    ORDER_LIST_REFETCH_PAGES: int = Field(
        default=1,
        ge=0,
        description="Recently read list pages refetched right after a status change; others are dropped",
    )
    ALLOW_CANCEL_FROM_ACTIVE: bool = Field(
        default=False,
        description="Offer 'cancelled' as a next status for every non-terminal order",
    )

    # ===================
    # Audit Trail Database
    # ===================
    DATABASE_URL: str = Field(
        default="sqlite:///./orderdesk.db", description="SQLAlchemy URL for the status audit trail"
    )

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL

    # ===================
    # CORS Settings
    # ===================
    # NoDecode: a comma-separated env value reaches parse_cors_origins as a raw string
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str) and v.strip().startswith("["):
            return json.loads(v)
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    FRONTEND_URL: str = Field(
        default="http://localhost:3000", description="Admin dashboard URL"
    )

    @model_validator(mode="after")
    def add_frontend_url_to_cors(self):
        """Ensure FRONTEND_URL is allowed for CORS."""
        if self.FRONTEND_URL and self.FRONTEND_URL not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS = list(self.ALLOWED_ORIGINS) + [self.FRONTEND_URL]
        return self

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


# Convenience alias for modules that read settings at import time
settings = get_settings()
