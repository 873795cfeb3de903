"""
SQLite engine and session factory for the user store.

Nothing is created at import time; lifecycle.startup() (or a test fixture)
calls init_db() once and dispose() on the way out.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None
_initialized = False


def sqlite_url(db_path: str) -> str:
    """SQLAlchemy URL for a SQLite file path; ``:memory:`` or "" gives an in-memory database."""
    if db_path in ("", ":memory:"):
        return "sqlite://"
    return f"sqlite:///{db_path}"


def _engine_kwargs(database_url: str) -> dict:
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return {}

    # Request handlers run in a threadpool
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise each checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    return kwargs


def init_db(database_url: str, *, echo: bool = False) -> None:
    """Create the engine and sessionmaker. A second call is a no-op."""
    global _engine, _SessionLocal, _initialized

    if _initialized:
        return

    if not database_url:
        raise RuntimeError("database_url is required to initialize the DB service")

    _engine = create_engine(database_url, echo=echo, pool_pre_ping=True, **_engine_kwargs(database_url))
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
    _initialized = True


def dispose() -> None:
    """Dispose the engine and forget it."""
    global _engine, _SessionLocal, _initialized

    if _engine is not None:
        _engine.dispose()

    _engine = None
    _SessionLocal = None
    _initialized = False


def is_initialized() -> bool:
    return _initialized


def _require_initialized() -> None:
    if not _initialized:
        raise RuntimeError("Database not initialized. Call init_db(...) before using the DB service.")


def get_engine() -> Engine:
    _require_initialized()
    return _engine


@contextmanager
def get_session() -> Iterator[Session]:
    """Session that commits on clean exit and rolls back on error."""
    _require_initialized()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
