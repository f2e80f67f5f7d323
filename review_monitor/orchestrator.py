
# ReviewMonitor: the top-level orchestrator.

# Responsibilities:
#   - own the aiohttp session, the event ledger and the preference store
#   - build one ReviewListWatcher and re-point it on every account change
#   - run one PollScheduler for the active account, replacing it on switch
#   - provide a clean stop() method for graceful shutdown
#
# Everything runs on one asyncio event loop: the poll timer, the cycles it
# spawns and the background merge checks.

import asyncio
import logging

import aiohttp

from review_monitor.config import GERRIT_BASE_URL, ConfigStore
from review_monitor.handlers import ConsoleNotificationSink, ConsoleReviewListPresenter
from review_monitor.http_client import GerritHTTPClient
from review_monitor.ledger import EventStateStore
from review_monitor.scheduler import PollScheduler
from review_monitor.service import GerritService
from review_monitor.watcher import ReviewListWatcher

log = logging.getLogger(__name__)


class ReviewMonitor:

    def __init__(
        self,
        base_url: str = GERRIT_BASE_URL,
        config: ConfigStore | None = None,
        store: EventStateStore | None = None,
    ) -> None:
        self._base_url = base_url
        self._config = config or ConfigStore()
        self._store = store or EventStateStore()
        self._session: aiohttp.ClientSession | None = None
        self._scheduler: PollScheduler | None = None
        self._stopped = asyncio.Event()

        self.watcher = ReviewListWatcher(
            store=self._store,
            sink=ConsoleNotificationSink(base_url),
            preferences=self._config.preferences,
        )
        self.watcher.subscribe(ConsoleReviewListPresenter())

    def change_account(self, user: str, password: str) -> None:
        """Tear down polling for the current account and start on `user` immediately."""
        if self._session is None:
            raise RuntimeError("ReviewMonitor.change_account() called before run()")

        if self._scheduler is not None:
            self._scheduler.stop()

        http_client = GerritHTTPClient(self._session, self._base_url, user, password)
        self.watcher.preferences = self._config.preferences
        self.watcher.change_account(GerritService(http_client, user))

        self._scheduler = PollScheduler(
            self.watcher.fetch_review_list,
            self._config.preferences.poll_interval_minutes,
        )
        self._scheduler.start()
        log.info("Watching reviews for %s on %s", user, self._base_url)

    async def run(self, user: str, password: str) -> None:
        async with aiohttp.ClientSession(
            headers={"User-Agent": "ReviewMonitor/1.0 (gerrit-review-queue)"},
        ) as session:
            self._session = session
            self.change_account(user, password)
            try:
                # blocks until stop() is called
                await self._stopped.wait()
            finally:
                await self._shutdown()
                self._session = None

    def stop(self) -> None:
        self._stopped.set()

    async def _shutdown(self) -> None:
        """Stop the timer, let running ticks finish, then cancel merge checks."""
        if self._scheduler is not None:
            self._scheduler.stop()
            # a tick finishing here may still spawn merge checks
            await self._scheduler.wait_idle()
        self.watcher.merge_watcher.cancel_all()
