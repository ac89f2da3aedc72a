"""
Background expiry sweep.

Runs SweepExpiredUseCase every SWEEP_INTERVAL_SECONDS on its own database
session. Started and stopped by the FastAPI lifespan.
"""

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from ciam.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from ciam.app.use_cases.maintenance import SweepExpiredUseCase

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, session_factory: Callable, interval_seconds: float):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def run_once(self):
        async with self.session_factory() as session:
            result = await SweepExpiredUseCase(SqlAlchemyUnitOfWork(session)).execute()
            return result.value

    async def _run(self) -> None:
        try:
            while True:
                try:
                    await self.run_once()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    # Keep sweeping; the next run retries the same rows
                    logger.exception("Expiry sweep failed")
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.info("Expiry sweeper stopped")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info("Expiry sweeper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
