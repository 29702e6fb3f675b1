"""SQLAlchemy 2.x async database setup.

This module defines the async engine and session factory but does not
hard-code any connection credentials.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import DatabaseSettings, get_settings


def engine_options(db: DatabaseSettings) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine``.

    SQLite gets no pool sizing: its dialect does not use a queue pool.
    """
    options: dict[str, Any] = {"echo": db.echo, "future": True}
    if not db.url.startswith("sqlite"):
        options["pool_size"] = db.pool_size
        options["max_overflow"] = db.max_overflow
    return options


_settings = get_settings()

engine: AsyncEngine = create_async_engine(_settings.db.url, **engine_options(_settings.db))

AsyncSessionMaker = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
