"""APScheduler-based liveness watchdog.

The watchdog expects food at least once per ``timeout`` seconds. When it goes
hungry it reports once through ``on_timeout`` and re-arms for another full
period. It never restarts anything itself.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from config.settings import settings
from chatpuppet.models.events import WatchdogEvent, WatchdogFood

logger = logging.getLogger(__name__)


class Watchdog:
    def __init__(
        self,
        timeout: float | None = None,
        name: str = "Puppet",
        on_timeout: Callable[[WatchdogEvent], Any] | None = None,
    ) -> None:
        self.timeout = _positive(timeout if timeout is not None else settings.watchdog_timeout)
        self.name = name
        self.on_timeout = on_timeout
        self.last_food = WatchdogFood()
        self._last_fed = time.monotonic()
        self._period = self.timeout
        self._scheduler: AsyncIOScheduler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._job_id = f"watchdog-{name}-{id(self):x}"

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self, timeout: float | None = None) -> None:
        """Arm the timer. Must be called from inside a running event loop."""
        if timeout is not None:
            self.timeout = _positive(timeout)
        if self._scheduler is None:
            self._loop = asyncio.get_running_loop()
            self._scheduler = AsyncIOScheduler(event_loop=self._loop)
            self._scheduler.start()
        self._last_fed = time.monotonic()
        self._arm(self.timeout)
        logger.debug("%s watchdog started (timeout=%.3fs)", self.name, self.timeout)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        # A closed loop has no timer left to cancel
        if self._loop.is_closed():
            logger.debug("%s watchdog dropped after its event loop closed", self.name)
            return
        scheduler.shutdown(wait=False)
        logger.debug("%s watchdog stopped", self.name)

    def feed(self, food: WatchdogFood | None = None) -> float:
        """Record food and restart the countdown.

        ``food.timeout`` overrides the period until the next feed. Returns the
        seconds elapsed since the previous feed (or since ``start``).
        """
        food = food or WatchdogFood()
        now = time.monotonic()
        elapsed = now - self._last_fed
        self.last_food = food
        self._last_fed = now
        if self._scheduler:
            self._arm(_positive(food.timeout) if food.timeout is not None else self.timeout)
        return elapsed

    def _arm(self, period: float) -> None:
        self._period = period
        self._scheduler.add_job(
            self._bark,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=period)),
            id=self._job_id,
            replace_existing=True,
            misfire_grace_time=None,
        )

    async def _bark(self) -> None:
        if self._scheduler is None:
            return
        elapsed = time.monotonic() - self._last_fed
        # Fed after this run was already dispatched
        if elapsed < self._period:
            return

        report = WatchdogEvent(food=self.last_food, timeout=self._period, elapsed=elapsed)
        logger.warning(
            "%s watchdog timeout: no food for %.3fs (timeout=%.3fs)", self.name, elapsed, self._period
        )
        self._arm(self.timeout)
        if self.on_timeout is None:
            return
        try:
            self.on_timeout(report)
        except Exception:
            logger.exception("%s watchdog timeout callback failed", self.name)


def _positive(timeout: float) -> float:
    if timeout <= 0:
        raise ValueError(f"Watchdog timeout must be positive, got {timeout}")
    return float(timeout)
