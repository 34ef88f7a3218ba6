# backend/api/limit_modified/db.py
from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from limit_modified.config import get_database_url


_engine: Engine | None = None


def get_engine() -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    _engine = create_engine(get_database_url(), pool_pre_ping=True, future=True)
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine (used when DATABASE_URL changes, e.g. in tests)."""
    global _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None


def db_ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
