"""Database engine and session utilities.

This module sets up the asynchronous database engine and session factory used by
request handlers, the in-process expiry sweeper and the Celery cleanup task.
"""
import os
from collections.abc import AsyncGenerator, Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filevault.core.config import Settings, settings


def resolve_database_url(config: Settings, environ: Mapping[str, str] = os.environ) -> str:
    """Pick the test database under ``TESTING=true``, the configured one otherwise."""
    if environ.get("TESTING") == "true":
        url = environ.get("TEST_DATABASE_URL") or config.test_database_url or config.database_url
    else:
        url = config.database_url

    url = (url or "").strip()
    if not url:
        raise RuntimeError(
            "DATABASE_URL is empty. Unset it to use the bundled SQLite database "
            "(sqlite+aiosqlite:///./filevault.db) or point it at Postgres "
            "(postgresql+asyncpg://<user>:<pass>@<host>/<db>)."
        )
    return url


DB_URL = resolve_database_url(settings)

engine = create_async_engine(
    DB_URL,
    echo=settings.debug,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, Any]:
    async with AsyncSessionLocal() as session:
        yield session
