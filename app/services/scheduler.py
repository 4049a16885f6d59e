"""Timer-driven cycle runner.

Ticks fire at a fixed rate after a warm-up delay. The cycle itself runs in a
worker thread; an in-flight flag, only touched from the event loop, keeps at
most one cycle running. A tick that finds the flag set is skipped, never
queued.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Set

from refresher.models import CycleReport

logger = logging.getLogger("scheduler")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CycleScheduler:
    def __init__(self, run: Callable[..., CycleReport], interval_seconds: float, warmup_seconds: float) -> None:
        self._run = run
        self.interval_seconds = interval_seconds
        self.warmup_seconds = warmup_seconds
        self._in_flight = False
        self._loop_task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

        self.cycles_started = 0
        self.cycles_failed = 0
        self.ticks_skipped = 0
        self.last_started_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_report: Optional[CycleReport] = None
        self.last_error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def trigger(self, *args: Any, **kwargs: Any) -> Optional[CycleReport]:
        """Run one cycle now, or return None if one is already in flight."""
        if self._in_flight:
            return None
        self._in_flight = True
        self.cycles_started += 1
        self.last_started_at = _now()
        try:
            report = await asyncio.to_thread(self._run, *args, **kwargs)
        except Exception as exc:
            self.cycles_failed += 1
            self.last_error = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            self._in_flight = False
            self.last_finished_at = _now()
        self.last_report = report
        self.last_error = None
        return report

    async def tick(self) -> Optional[CycleReport]:
        if self._in_flight:
            self.ticks_skipped += 1
            logger.warning("Previous cycle still running; skipping tick (skipped=%s)", self.ticks_skipped)
            return None
        try:
            return await self.trigger()
        except Exception:
            logger.exception("Scheduled cycle crashed")
            return None

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.tick())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def run_forever(self) -> None:
        logger.info("Scheduler started warmup=%ss interval=%ss", self.warmup_seconds, self.interval_seconds)
        await asyncio.sleep(self.warmup_seconds)
        while True:
            self._spawn_tick()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if not self.running:
            self._loop_task = asyncio.create_task(self.run_forever())
        return self._loop_task

    async def stop(self) -> None:
        """Stop firing ticks and let an in-flight cycle finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
        logger.info("Scheduler stopped")

    def state(self) -> dict:
        return {
            "running": self.running,
            "in_flight": self._in_flight,
            "interval_seconds": self.interval_seconds,
            "warmup_seconds": self.warmup_seconds,
            "cycles_started": self.cycles_started,
            "cycles_failed": self.cycles_failed,
            "ticks_skipped": self.ticks_skipped,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_finished_at": self.last_finished_at.isoformat() if self.last_finished_at else None,
            "last_counts": self.last_report.counts() if self.last_report else None,
            "last_error": self.last_error,
        }
