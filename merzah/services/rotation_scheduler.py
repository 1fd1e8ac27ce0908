"""
merzah.services.rotation_scheduler — Periodic Rotation Loop
============================================================

Runs :func:`~merzah.services.rotation_service.run_rotation` every
``interval`` seconds on the event loop, shipping the synchronous DB work to
a thread via ``run_db()``.

Cancellation is cooperative: :meth:`RotationScheduler.stop` raises a
thread-safe flag that the running batch checks *between* events, so shutdown
never leaves an event half-advanced.  The same call wakes the loop out of
its sleep and waits for it to exit.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from sqlalchemy import Engine

from merzah.constants import DEFAULT_ROTATION_INTERVAL_MINUTES, ROTATION_MAX_ITERATIONS
from merzah.database.engine import run_db
from merzah.engine.clock import Clock, SystemClock
from merzah.services.rotation_service import RotationReport, run_rotation

logger = logging.getLogger(__name__)


class RotationScheduler:
    """Background task that rotates recurring events on a fixed period."""

    def __init__(
        self,
        engine: Engine,
        *,
        clock: Clock | None = None,
        interval: float = DEFAULT_ROTATION_INTERVAL_MINUTES * 60,
        max_iterations: int = ROTATION_MAX_ITERATIONS,
        run_immediately: bool = True,
    ) -> None:
        self.engine = engine
        self.clock = clock or SystemClock()
        self.interval = interval
        self.max_iterations = max_iterations
        self.run_immediately = run_immediately
        self.last_report: RotationReport | None = None
        self._stop_flag = threading.Event()
        self._task: asyncio.Task | None = None
        self._wakeup: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> RotationReport:
        """One rotation batch against ``clock.now()``."""
        report = await run_db(
            run_rotation,
            self.engine,
            self.clock.now(),
            max_iterations=self.max_iterations,
            should_stop=self._stop_flag.is_set,
        )
        self.last_report = report
        return report

    async def _sleep(self) -> None:
        """Wait one period, or until :meth:`stop` wakes us."""
        assert self._wakeup is not None
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
        except TimeoutError:
            pass

    async def _loop(self) -> None:
        if not self.run_immediately:
            await self._sleep()
        while not self._stop_flag.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Rotation task failed", extra={"task": "rotation"})
            await self._sleep()

    def start(self) -> None:
        """Start the loop on the running event loop."""
        if self.running:
            return
        self._stop_flag.clear()
        self._wakeup = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name="event-rotation"
        )
        logger.info("Rotation scheduler started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Ask the in-flight batch to stop between events, then wait for the
        loop to exit."""
        self._stop_flag.set()
        task, self._task = self._task, None
        if task is None:
            return
        if self._wakeup is not None:
            self._wakeup.set()
        await task
        logger.info("Rotation scheduler stopped")
