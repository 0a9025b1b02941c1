"""
db/session.py

Engine and session plumbing for the pipeline database.

The engine is built on first use, so importing this module (and anything
that imports it, such as the routers) needs no database configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url, resolve_pool_settings

_state: dict[str, object] = {}


def create_db_engine() -> Engine:
    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        # Upserts, JSONB and advisory locks need PostgreSQL.
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool = resolve_pool_settings()
    return create_engine(
        database_url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
        pool_recycle=pool.pool_recycle,
    )


def get_engine() -> Engine:
    if "engine" not in _state:
        _state["engine"] = create_db_engine()
    return _state["engine"]  # type: ignore[return-value]


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    if "factory" not in _state:
        _state["factory"] = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _state["factory"]()  # type: ignore[operator]


@contextmanager
def session_scope(factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    """
    Yield a session for a unit of work outside a request and always close it.

    Committing stays with the caller: a scheduler job commits per
    organization, not per scope.
    """
    session = factory()
    try:
        yield session
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    with session_scope() as session:
        yield session
