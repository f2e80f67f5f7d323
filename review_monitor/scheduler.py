
# PollScheduler: the repeating timer that drives ReviewListWatcher.

# The timer never awaits a cycle. Each tick is spawned as its own task and
# the watcher's in-flight flag turns overlapping ticks into no-ops, so a
# slow server delays nothing but its own cycle.

import asyncio
import logging
from collections.abc import Awaitable, Callable

from review_monitor.config import DEFAULT_REFRESH_FREQUENCY, REFRESH_FREQUENCIES

log = logging.getLogger(__name__)


class PollScheduler:

    def __init__(
        self,
        tick: Callable[[], Awaitable[object]],
        interval_minutes: int = DEFAULT_REFRESH_FREQUENCY,
    ) -> None:
        if interval_minutes not in REFRESH_FREQUENCIES:
            raise ValueError(
                f"Refresh frequency must be one of {REFRESH_FREQUENCIES}, got {interval_minutes!r}"
            )
        self._tick = tick
        self.interval_minutes = interval_minutes
        self._timer: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Fire the first tick right away, then one per interval."""
        if self.running:
            return
        self._timer = asyncio.create_task(self._run(), name="poll-timer")
        log.info("Polling every %d minute(s)", self.interval_minutes)

    def stop(self) -> None:
        """Tear down the timer. Ticks already running are left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_idle(self) -> None:
        """Wait for every spawned tick to finish."""
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

    async def _run(self) -> None:
        try:
            while True:
                self._fire()
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            log.debug("Poll timer stopped")
            raise

    def _fire(self) -> None:
        task = asyncio.create_task(self._safe_tick(), name="poll-tick")
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def _safe_tick(self) -> None:
        try:
            await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("Unexpected error in poll tick: %s", exc)
