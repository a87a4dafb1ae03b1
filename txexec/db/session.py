"""Engine factories built from :class:`txexec.config.TxSettings`."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from txexec.config import TxSettings, get_settings

logger = logging.getLogger(__name__)


def _engine_kwargs(settings: TxSettings, url: str) -> Dict[str, Any]:
    # SQLite uses its own pool classes; sizing arguments do not apply.
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": settings.DB_POOL_PRE_PING,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


def create_engine_from_settings(settings: Optional[TxSettings] = None) -> Engine:
    """
    Create a SQLAlchemy engine from settings.

    Falls back to an in-memory SQLite database when no URL is configured.
    """
    settings = settings or get_settings()
    url = settings.DATABASE_URL or "sqlite://"
    logger.info(f"Creating engine for {url.split('://', 1)[0]} database")
    return create_engine(url, **_engine_kwargs(settings, url))


def create_async_engine_from_settings(settings: Optional[TxSettings] = None):
    """Async counterpart of :func:`create_engine_from_settings`.

    ``DATABASE_URL`` must name an async driver (``postgresql+asyncpg://``,
    ``sqlite+aiosqlite://``...).
    """
    from sqlalchemy.ext.asyncio import create_async_engine

    settings = settings or get_settings()
    if not settings.DATABASE_URL:
        raise ValueError("TXEXEC_DATABASE_URL is required to create an async engine")
    url = settings.DATABASE_URL
    logger.info(f"Creating async engine for {url.split('://', 1)[0]} database")
    return create_async_engine(url, **_engine_kwargs(settings, url))
