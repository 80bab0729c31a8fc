"""Periodic eviction of stale records using APScheduler.

This module provides the StoreSweeper class, which removes stale records
from a RecordStore on a fixed interval regardless of read/write traffic.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from serverwatch.observability.metrics import get_metrics_collector
from serverwatch.storage.memory import RecordStore

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "record_sweep"


class StoreSweeper:
    """Store sweeper using APScheduler.

    Runs RecordStore.sweep on a fixed interval. The job is registered once
    when the sweeper starts and lives until the sweeper is stopped.

    Example:
        >>> sweeper = StoreSweeper(store, interval_seconds=30)
        >>> await sweeper.start()
        >>> await sweeper.stop()
    """

    def __init__(
        self,
        store: RecordStore,
        interval_seconds: float = 30,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the sweeper.

        Args:
            store: Store to evict from
            interval_seconds: Seconds between sweeps (default: 30)
            clock: Source of epoch seconds, injectable for tests
        """
        self.store = store
        self.interval_seconds = interval_seconds
        self._clock = clock
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.last_swept_at: Optional[float] = None

    @property
    def running(self) -> bool:
        """Whether the underlying scheduler is running."""
        return bool(self.scheduler.running)

    async def start(self) -> None:
        """Start the scheduler and register the sweep job.

        This should be called during application startup, from inside the
        event loop the store is used on.
        """
        logger.info(f"Starting record sweeper (every {self.interval_seconds}s)")
        self.scheduler.add_job(
            self.sweep_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SWEEP_JOB_ID,
            coalesce=True,  # A late sweep covers everything a missed one would have
            max_instances=1,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Record sweeper started successfully")

    async def stop(self) -> None:
        """Stop the scheduler.

        This should be called during application shutdown.
        """
        logger.info("Stopping record sweeper")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler applies shutdown on the next loop iteration
            await asyncio.sleep(0)
        logger.info("Record sweeper stopped successfully")

    async def sweep_once(self) -> int:
        """Run one eviction pass.

        Returns:
            Number of records removed
        """
        now = self._clock()
        removed = await self.store.sweep(now)
        self.last_swept_at = now
        get_metrics_collector().record_sweep(removed)
        if removed:
            logger.info(f"Swept {removed} stale records ({len(self.store)} remaining)")
        else:
            logger.debug("Sweep found no stale records")
        return removed
