"""Database engine and session factory."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from snapfeed.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Model modules must be imported before create_all so the metadata is complete.
import snapfeed.models  # noqa: E402,F401


def engine_options(database_url: str) -> dict[str, Any]:
    """Return ``create_engine`` keyword arguments suited to the URL's dialect.

    SQLite connections are shared with the threadpool FastAPI runs sync
    dependencies on, and an in-memory database only exists for the
    connection that created it, so it is pinned to a single one.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def build_engine(database_url: str | None = None) -> Engine:
    """Create an engine for ``database_url`` (the configured URL by default)."""
    url = database_url or settings.effective_database_url
    return create_engine(url, echo=settings.sql_debug, **engine_options(url))


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create every table known to the metadata on ``bind``."""
    Base.metadata.create_all(bind=bind or engine)
