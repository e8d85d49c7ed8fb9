"""Database engine setup for the janitor resource tracker."""

from typing import Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.pool import StaticPool

from ..config import Settings, get_settings


def _ensure_sync_driver(url: URL) -> URL:
    """Force a synchronous driver for Alembic and the tracker engine."""

    if url.drivername.startswith("postgresql+"):
        # Normalize any async driver variants to psycopg (sync)
        if any(token in url.drivername for token in ("async", "aiopg")):
            url = url.set(drivername="postgresql+psycopg")
    elif url.drivername.startswith("sqlite+"):
        if "aiosqlite" in url.drivername:
            url = url.set(drivername="sqlite")

    return url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Return a database URL with a guaranteed synchronous driver."""

    url = make_url(raw_url or get_settings().database_url)
    # str(url) would mask the password with ***
    return _ensure_sync_driver(url).render_as_string(hide_password=False)


def create_tracker_engine(
    database_url: Optional[str] = None, settings: Optional[Settings] = None
) -> Engine:
    """
    Create an engine for the tracking table.

    SQLite gets a single shared connection; other backends get a small
    bounded pool sized from settings.
    """
    settings = settings or get_settings()
    url = get_database_url(database_url or settings.database_url)

    if url.startswith("sqlite"):
        # SQLite configuration for development/testing
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
