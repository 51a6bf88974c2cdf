"""Database connection and session management."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timeclock_payroll.config import get_settings
from timeclock_payroll.storage.base import Base


def get_engine(database_url: str | None = None) -> Engine:
    """Create database engine.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    url = database_url or get_settings().database_url
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


# Global engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_db(database_url: str | None = None) -> tuple[Engine, sessionmaker[Session]]:
    """Initialize database engine and session factory, creating tables."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine(database_url)
        Base.metadata.create_all(_engine)
        _session_factory = session_factory_for(_engine)
    assert _session_factory is not None
    return _engine, _session_factory


def session_factory_for(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)
