"""Database connectivity for the MFA engine.

Provides lazy, process-wide engine creation from configuration.

Environment Variables:
    MFA_DATABASE_URL: SQLAlchemy connection string. When unset the engine
        falls back to the in-memory store and no engine is created.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from mfa.config import load_config

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_engine: Engine | None = None


class DatabaseConfigError(Exception):
    """Raised when database access is requested but no URL is configured."""


def is_database_configured() -> bool:
    """Check whether MFA_DATABASE_URL is set."""
    return load_config().database_url is not None


def _normalize_db_url(url: str) -> str:
    """Rewrite the legacy ``postgres://`` scheme SQLAlchemy no longer accepts."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_database_url() -> str:
    """Get the database URL from configuration.

    Raises:
        DatabaseConfigError: If MFA_DATABASE_URL is not set.
    """
    url = load_config().database_url
    if not url:
        raise DatabaseConfigError("Database URL not configured. Set MFA_DATABASE_URL.")
    return _normalize_db_url(url)


def get_engine() -> Engine:
    """Get or create the process-wide engine.

    Raises:
        DatabaseConfigError: If MFA_DATABASE_URL is not set.
    """
    global _engine

    if _engine is None:
        _engine = create_engine(get_database_url(), pool_pre_ping=True, echo=False)
        logger.info("Created database engine")

    return _engine


def reset_engines() -> None:
    """Dispose the cached engine. Used by tests."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
