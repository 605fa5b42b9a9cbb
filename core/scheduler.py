"""
Refresh Scheduler Module
Interval timer that triggers sync cycles.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import REFRESH_INTERVALS


logger = logging.getLogger(__name__)

SyncCallback = Callable[[str], Awaitable[object]]


class RefreshScheduler:
    """
    Fires a sync once on start and then every `interval` seconds.

    Changing the interval cancels the pending timer before a new one is
    installed. Sync cycles run as separate tasks, so cancelling the timer
    never cancels a cycle that is already in flight.
    """

    def __init__(self, callback: SyncCallback, interval: int = 30, sleep=asyncio.sleep):
        """
        Args:
            callback: Coroutine function receiving the trigger label.
            interval: Seconds between cycles; 0 turns auto-refresh off.
            sleep: Awaitable sleep; injectable for tests.
        """
        self._validate(interval)
        self.callback = callback
        self.interval = interval
        self._sleep = sleep
        self._timer: Optional[asyncio.Task] = None
        self._cycles: set[asyncio.Task] = set()

    @staticmethod
    def _validate(interval: int) -> None:
        if interval not in REFRESH_INTERVALS:
            raise ValueError(f"Refresh interval must be one of {REFRESH_INTERVALS}, got {interval}")

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Sync immediately, then on the configured interval."""
        self._spawn("start")
        self._reschedule()

    def stop(self) -> None:
        """Cancel the timer. In-flight cycles are left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def set_interval(self, interval: int) -> None:
        """Change the interval, replacing the pending timer."""
        self._validate(interval)
        logger.info("Auto-refresh interval %ss -> %ss", self.interval, interval)
        self.interval = interval
        self._reschedule()

    def _reschedule(self) -> None:
        self.stop()
        if self.interval > 0:
            self._timer = asyncio.create_task(self._run(self.interval))

    async def _run(self, interval: int) -> None:
        while True:
            await self._sleep(interval)
            self._spawn("timer")

    def _spawn(self, trigger: str) -> None:
        task = asyncio.create_task(self._invoke(trigger))
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def _invoke(self, trigger: str) -> None:
        try:
            await self.callback(trigger)
        except Exception:
            logger.exception("Scheduled %s refresh failed", trigger)
