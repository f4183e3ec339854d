"""
collectify.db.engine - Engine bootstrap and session factory.

The connection string comes from ``DATABASE_URL``; switching SQLite for
Postgres needs no other change.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from collectify.db.models import Base

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _is_memory_url(db_url: str) -> bool:
    return db_url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in db_url


def init_db(db_url: str) -> Engine:
    """Create the engine, apply SQLite pragmas, and emit CREATE TABLE."""
    global _engine, _SessionLocal

    kwargs: dict = {"echo": False, "future": True}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync endpoints on a thread pool.
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_url(db_url):
            kwargs["poolclass"] = StaticPool

    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(db_url, **kwargs)

    if db_url.startswith("sqlite"):
        in_memory = _is_memory_url(db_url)

        @event.listens_for(_engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _rec):
            cur = dbapi_conn.cursor()
            if not in_memory:
                cur.execute("PRAGMA journal_mode=WAL")
            cur.execute("PRAGMA foreign_keys=ON")
            cur.execute("PRAGMA synchronous=NORMAL")
            cur.close()

    Base.metadata.create_all(_engine)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
    return _engine


def is_initialised() -> bool:
    return _SessionLocal is not None


def get_session() -> Session:
    """Return a new session.  Caller is responsible for .close()."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialised - call init_db() first")
    return _SessionLocal()
