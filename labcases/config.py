"""
Configuration management using Pydantic Settings.
All parameters are loaded from environment variables with sensible defaults.
"""

import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_BASE_PATH = Path(os.environ.get(
    "LABCASES_BASE_PATH",
    Path.home() / ".labcases",
))
ENV_FILE_PATH = APP_BASE_PATH / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: str = Field(default="development")
    app_debug: bool = Field(default=False)
    app_log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False)

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Storage
    storage_backend: str = Field(default="memory")  # "memory" or "sql"
    database_url: str = Field(default="sqlite:///./data/labcases.db")

    # Exchange rate provider
    exchange_rate_api_url: str = Field(
        default="https://open.er-api.com/v6/latest"
    )
    exchange_rate_timeout_seconds: float = Field(default=10.0)
    exchange_rate_cache_seconds: int = Field(default=3600)

    # Reconciliation
    money_tolerance: Decimal = Field(default=Decimal("0.01"))
    max_payment_entries: int = Field(default=4)

    # Change detection
    diff_numeric_tolerance: Decimal = Field(default=Decimal("1e-9"))

    # Decimal auto-correction
    autocorrect_enabled: bool = Field(default=True)
    autocorrect_threshold: Decimal = Field(default=Decimal("10"))
    autocorrect_divisors: List[int] = Field(default_factory=lambda: [10, 100])

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def log_dir(self) -> Path:
        return APP_BASE_PATH / "logs"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
