"""
Environment driven settings for txexec.

Only the engine factory and the logging setup read these settings. The
executor never does: a missing ``TxConfig`` always means driver defaults.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from txexec.core.options import IsolationLevel, TxConfig
from txexec.utils.logging import configure_logging


class TxSettings(BaseSettings):
    """Settings loaded from ``TXEXEC_*`` environment variables or ``.env``."""

    # ==========================================
    # DATABASE
    # ==========================================
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True

    # ==========================================
    # TRANSACTION DEFAULTS
    # ==========================================
    DEFAULT_ISOLATION_LEVEL: IsolationLevel = IsolationLevel.DEFAULT
    DEFAULT_READ_ONLY: bool = False
    DEALLOCATE_ALL: bool = False

    # ==========================================
    # LOGGING
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = SettingsConfigDict(
        env_prefix="TXEXEC_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        # Strip quotes that leak in from .env files
        v = v.strip().strip("'").strip('"')
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("DEFAULT_ISOLATION_LEVEL", mode="before")
    @classmethod
    def parse_isolation_level(cls, v):
        if isinstance(v, str):
            return IsolationLevel(v)
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    def to_config(self) -> TxConfig:
        """Build the ``TxConfig`` described by the transaction defaults."""
        return TxConfig(
            isolation_level=self.DEFAULT_ISOLATION_LEVEL,
            read_only=self.DEFAULT_READ_ONLY,
            deallocate_all=self.DEALLOCATE_ALL,
        )


@lru_cache()
def get_settings() -> TxSettings:
    """Return the cached settings instance."""
    return TxSettings()


def configure_logging_from_settings(settings: Optional[TxSettings] = None) -> logging.Handler:
    """Install the package log handler using ``LOG_LEVEL`` and ``LOG_JSON``."""
    settings = settings or get_settings()
    return configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
