
# ReviewListWatcher: one poll cycle against the review queue of one account.

# responsibilities:
#   - fetch the change list, at most one fetch in flight per account
#   - drop changes without an identity, put the user's own changes first
#   - diff against the previous snapshot and decide notifications per change
#   - persist the event ledger and broadcast the unread count
#   - hand disappeared changes to the MergeWatcher
#   - apply acknowledgements coming from the presentation layer
#
# The diff → decide → persist → broadcast phase contains no awaits, so on a
# single event loop it cannot interleave with an acknowledgement.

import asyncio
import logging
from typing import Protocol

from review_monitor.config import Preferences
from review_monitor.decider import NotificationDecider
from review_monitor.differ import diff_snapshots, reorder_changes
from review_monitor.ledger import EventStateStore
from review_monitor.merge_watcher import MergeWatcher
from review_monitor.models import Change, Notification, ViewEntry
from review_monitor.service import ReviewService, ReviewServiceError

log = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def deliver(self, notification: Notification) -> None: ...


class ReviewListObserver(Protocol):
    def on_review_list_updated(self, entries: list[ViewEntry]) -> None: ...

    def on_new_events_count(self, count: int) -> None: ...


class ReviewListWatcher:

    def __init__(
        self,
        store: EventStateStore,
        sink: NotificationSink,
        preferences: Preferences | None = None,
        service: ReviewService | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._decider = NotificationDecider(preferences or Preferences())
        self._merge_watcher = MergeWatcher(self._post_merged)
        self._observers: list[ReviewListObserver] = []
        self._service = service

        self.changes: list[Change] = []
        self.entries: list[ViewEntry] = []
        self.is_fetching = False
        self._fetching_epoch: int | None = None
        self._is_first_loading = True
        self._epoch = 0

    @property
    def preferences(self) -> Preferences:
        return self._decider.preferences

    @preferences.setter
    def preferences(self, value: Preferences) -> None:
        self._decider.preferences = value

    @property
    def merge_watcher(self) -> MergeWatcher:
        return self._merge_watcher

    @property
    def is_first_loading(self) -> bool:
        return self._is_first_loading

    @property
    def new_events_count(self) -> int:
        return sum(1 for entry in self.entries if entry.has_new_event)

    def subscribe(self, observer: ReviewListObserver) -> None:
        self._observers.append(observer)

    def change_account(self, service: ReviewService) -> None:
        """
        Start over for another account: forget the previous snapshot and
        re-arm first-load suppression. A fetch still running for the old
        account is left alone; its result is discarded when it lands.
        """
        self._service = service
        self._epoch += 1
        self.changes = []
        self.entries = []
        self.is_fetching = False
        self._fetching_epoch = None
        self._is_first_loading = True

    # ─── poll cycle ───────────────────────────────────────────────────────────

    async def fetch_review_list(self) -> bool:
        """
        Run one cycle. Returns True when a snapshot was applied, False when
        the tick was dropped, the fetch failed or the result went stale.
        """
        if self._service is None:
            log.debug("No account configured, skipping fetch")
            return False
        if self.is_fetching:
            log.debug("Fetch already in flight, dropping tick")
            return False

        epoch   = self._epoch
        service = self._service
        self.is_fetching = True
        self._fetching_epoch = epoch
        try:
            snapshot = await service.fetch_change_list()
        except ReviewServiceError as exc:
            log.warning("Fetching review list failed, will retry next tick: %s", exc)
            return False
        finally:
            if self._fetching_epoch == epoch:
                self.is_fetching = False
                self._fetching_epoch = None

        if epoch != self._epoch:
            log.info("Account changed while fetching, discarding %d change(s)", len(snapshot))
            return False

        try:
            notifications = self._apply_snapshot(snapshot, service)
        except Exception as exc:
            log.exception("Unexpected error applying review list: %s", exc)
            return False

        for notification in notifications:
            await self._post(notification)
        return True

    def _apply_snapshot(self, snapshot: list[Change], service: ReviewService) -> list[Notification]:
        suppressed = self._is_first_loading
        current = reorder_changes([c for c in snapshot if c.id])
        if len(current) != len(snapshot):
            log.debug("Ignoring %d change(s) without an id", len(snapshot) - len(current))

        diff = diff_snapshots(current, self.changes)
        if diff.disappeared:
            self._merge_watcher.check_disappeared(diff.disappeared, service, self._epoch)

        entries: list[ViewEntry] = []
        pending: list[Notification] = []
        for item in diff.entries:
            change = item.change
            entry  = ViewEntry(change, has_new_event=change.has_unread_signal())
            if entry.is_ours_not_ready and not self.preferences.show_own_changes_not_ready:
                continue

            if change.state_key in self._store:
                entry.has_new_event = self._store.get(change.state_key)

            if not suppressed:
                decision = self._decider.decide(change, item.transition, item.prior)
                if decision.fired:
                    entry.has_new_event = True
                pending.extend(decision.notifications)

            entries.append(entry)

        self.changes = current
        self.entries = entries
        self.update_new_events_count()
        self._broadcast_list()
        self._is_first_loading = False

        log.info(
            "Review list updated: %d change(s), %d unread, %d notification(s)%s",
            len(entries), self.new_events_count, len(pending), " (first load, silent)" if suppressed else "",
        )
        return pending

    # ─── acknowledgement ──────────────────────────────────────────────────────

    def acknowledge(self, action_key: str) -> bool:
        """Mark the change behind a notification or list row as seen."""
        entry = next((e for e in self.entries if e.key == action_key), None)
        if entry is None:
            log.debug("Nothing to acknowledge for %r", action_key)
            return False
        entry.reset_event()
        self._store.clear(entry.key)
        self.update_new_events_count()
        self._broadcast_list()
        return True

    def clear_all_new_events(self) -> None:
        if not self.entries:
            # nothing fetched yet for this account; keep the persisted ledger
            return
        for entry in self.entries:
            entry.reset_event()
        self.update_new_events_count()
        self._broadcast_list()

    def update_new_events_count(self) -> int:
        self._store.set_all({e.key: e.has_new_event for e in self.entries})
        count = self.new_events_count
        for observer in self._observers:
            observer.on_new_events_count(count)
        return count

    # ─── delivery ─────────────────────────────────────────────────────────────

    def _broadcast_list(self) -> None:
        for observer in self._observers:
            observer.on_review_list_updated(list(self.entries))

    async def _post_merged(self, notification: Notification, epoch: int) -> None:
        if epoch != self._epoch:
            log.info("Dropping merge notification %r from a previous account", notification.title)
            return
        await self._post(notification)

    async def _post(self, notification: Notification) -> None:
        if self._is_first_loading:
            log.debug("First load, not delivering %r", notification.title)
            return
        try:
            await self._sink.deliver(notification)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.warning("Delivering notification %r failed: %s", notification.title, exc)
