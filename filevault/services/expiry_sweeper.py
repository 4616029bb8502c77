"""In-process periodic expiry sweep."""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from filevault.core.config import Settings, settings
from filevault.domains.files.service import FileService
from filevault.services.storage import BlobStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Background loop that purges expired files at a fixed interval.

    Each pass opens its own session, so the sweep never shares state with
    request handlers. A failing pass is logged and the loop keeps running.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        store: BlobStore,
        interval_seconds: float | None = None,
        config: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.store = store
        self.config = config or settings
        self.interval_seconds = interval_seconds or self.config.expiry_sweep_interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def sweep_once(self) -> dict[str, int]:
        async with self.session_factory() as session:
            service = FileService(session, self.store, config=self.config)
            return await service.purge_expired()

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Expiry sweep failed")
            await asyncio.sleep(self.interval_seconds)
