"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Override via environment variables (prefixed with FNE_) or a .env file.

    Examples:
        FNE_SQLITE_PATH=/var/lib/fund_nav_engine/engine.db
        FNE_LOG_FORMAT=json
        FNE_FEE_USE_PRIOR_APPROVED_NAV=false
    """

    model_config = SettingsConfigDict(
        env_prefix="FNE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Fund NAV Engine"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False, description="Enable debug mode")

    # Database
    sqlite_path: Path = Field(
        default=Path("fund_nav_engine.db"),
        description="SQLite database file path",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format: 'json' for production, 'console' for development",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # API Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Valuation
    base_currency: str = Field(default="USD", min_length=3, max_length=3)
    money_places: int = Field(default=2, ge=0, le=8)
    ratio_places: int = Field(default=4, ge=0, le=10)
    default_price_precision: int = Field(default=4, ge=0, le=10)
    fee_use_prior_approved_nav: bool = Field(
        default=True,
        description=(
            "Pass the latest prior approved NAV into the fee calculator. "
            "When false, a previous NAV of zero is used."
        ),
    )
    negative_quantity_categories: list[str] = Field(
        default_factory=lambda: [
            "short_position",
            "derivative",
            "fx_forward",
            "swap",
            "accrued_expense",
        ],
        description="Line item categories allowed to carry a negative quantity",
    )

    @field_validator("debug", mode="before")
    @classmethod
    def set_debug_from_environment(cls, v: bool, info) -> bool:
        """Auto-enable debug in development environment."""
        if info.data.get("environment") == Environment.DEVELOPMENT:
            return True
        return v

    @field_validator("base_currency", mode="after")
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
