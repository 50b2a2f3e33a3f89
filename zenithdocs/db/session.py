"""
Async engine and session factory for the credential store.

Postgres (asyncpg) in deployment; SQLite (aiosqlite) works for local runs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from zenithdocs.core.config import settings


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    backend = make_url(database_url).get_backend_name()
    if backend == "postgresql":
        options.update(pool_size=20, max_overflow=10, pool_recycle=300)
    elif backend == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# objects stay usable after commit; repositories re-read with populate_existing
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
