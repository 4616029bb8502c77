"""Celery tasks for expired file cleanup."""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401

from filevault.celery_app import celery_app
from filevault.core.config import settings
from filevault.domains.files.service import FileService
from filevault.services.storage import build_blob_store

logger = logging.getLogger(__name__)


@celery_app.task(name="filevault.tasks.cleanup_tasks.purge_expired_files_task", bind=True)
def purge_expired_files_task(self) -> dict[str, int]:
    """Delete expired file records and their blobs.

    Scheduled by Celery Beat when ``EXPIRY_SWEEP_MODE=celery``. A failed run
    is not retried; the next scheduled run picks up whatever is left.

    Returns:
        Dictionary with sweep statistics
    """
    logger.info("Starting expiry sweep (task id: %s)", self.request.id)
    result = asyncio.run(_purge_expired_async())
    logger.info("Expiry sweep finished: %s", result)
    return result


async def _purge_expired_async(database_url: str | None = None) -> dict[str, Any]:
    """Run one sweep on a private engine bound to this event loop."""
    engine = create_async_engine(database_url or settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with session_factory() as session:
            service = FileService(session, build_blob_store(settings))
            return await service.purge_expired()
    finally:
        await engine.dispose()
