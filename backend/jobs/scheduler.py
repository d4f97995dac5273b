"""
scheduler.py — Wall-clock aligned background jobs
Every replica wakes at the same absolute boundaries (with a 5 minute interval: :00,
:05, :10, ...) and races for one coordination lock; the winner runs the cycle, the
others skip it.
"""

import asyncio
import contextlib
import logging
import time
from typing import Awaitable, Callable

from config import MEMORY_EXTRACTION_INTERVAL_MS, MEMORY_EXTRACTION_LOCK_ID
from jobs.locks import AdvisoryLock, create_advisory_lock

logger = logging.getLogger(__name__)


def next_aligned_fire_time(now_ms: int, interval_ms: int) -> int:
    """Smallest multiple of interval_ms that is >= now_ms (epoch milliseconds)."""
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    return -(-now_ms // interval_ms) * interval_ms


class AlignedJobScheduler:
    """Runs *job* under *lock* once per aligned interval, forever."""

    def __init__(
        self,
        lock: AdvisoryLock,
        job: Callable[[], Awaitable[None]],
        interval_ms: int,
        name: str = "job",
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.lock = lock
        self.job = job
        self.interval_ms = interval_ms
        self.name = name
        self.clock = clock
        self.sleep = sleep
        self._task: asyncio.Task | None = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def run_once(self) -> bool:
        """One cycle: try the lock, run the job if it was won, always release.

        Returns True if this replica held the lock for the cycle. Never raises.
        """
        acquired = False
        try:
            with self.lock.hold() as acquired:
                if not acquired:
                    logger.debug(f"Another backend instance is running '{self.name}', skipping this run")
                    return False
                await self.job()
        except Exception:
            logger.exception(f"Scheduled job '{self.name}' failed")
        return acquired

    async def run_forever(self) -> None:
        last_fired_ms = None
        while True:
            now_ms = self._now_ms()
            fire_at_ms = next_aligned_fire_time(now_ms, self.interval_ms)
            if last_fired_ms is not None and fire_at_ms <= last_fired_ms:
                # Woke exactly on the boundary we just handled
                fire_at_ms = last_fired_ms + self.interval_ms
            await self.sleep((fire_at_ms - now_ms) / 1000)
            last_fired_ms = fire_at_ms
            await self.run_once()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run_forever(), name=f"scheduler:{self.name}")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


_scheduler_instance: AlignedJobScheduler | None = None


def start_scheduler(engine=None) -> AlignedJobScheduler:
    """Start the process-wide memory extraction scheduler (idempotent)."""
    global _scheduler_instance
    if _scheduler_instance is None:
        from database import engine as default_engine
        from services.memory_extraction_service import process_memory_extraction_batch

        _scheduler_instance = AlignedJobScheduler(
            lock=create_advisory_lock(engine or default_engine, MEMORY_EXTRACTION_LOCK_ID),
            job=process_memory_extraction_batch,
            interval_ms=MEMORY_EXTRACTION_INTERVAL_MS,
            name="memory-extraction",
        )

    logger.info(
        f"Starting memory extraction scheduler (interval: {MEMORY_EXTRACTION_INTERVAL_MS}ms, wall-clock aligned)"
    )
    _scheduler_instance.start()
    return _scheduler_instance


async def stop_scheduler() -> None:
    global _scheduler_instance
    if _scheduler_instance is not None:
        await _scheduler_instance.stop()
        _scheduler_instance = None
