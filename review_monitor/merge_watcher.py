
# MergeWatcher: finds out whether a change that left the queue was merged
# by somebody else.

# One background lookup per disappeared change, started in the cycle that
# saw it disappear and never repeated. Lookups only produce notifications;
# they never touch the snapshots held by the poll cycle. Each lookup carries
# the account epoch it was started under, so the receiver can drop results
# that belong to an account it no longer watches.

import asyncio
import logging
from collections.abc import Awaitable, Callable

from review_monitor.decider import merged_by_other_notification
from review_monitor.models import Change, Notification
from review_monitor.service import ReviewService, ReviewServiceError

log = logging.getLogger(__name__)

NotifyFn = Callable[[Notification, int], Awaitable[None]]


class MergeWatcher:

    def __init__(self, notify: NotifyFn) -> None:
        self._notify = notify
        self._tasks: set[asyncio.Task] = set()

    def check_disappeared(
        self,
        disappeared: list[Change],
        service: ReviewService,
        epoch: int = 0,
    ) -> list[asyncio.Task]:
        """Spawn a detail lookup for every own change that can be looked up."""
        spawned: list[asyncio.Task] = []
        for change in disappeared:
            if not change.is_ours or not change.change_id:
                continue
            task = asyncio.create_task(
                self._check(change, service, epoch),
                name=f"merge-check-{change.number}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            spawned.append(task)
        return spawned

    async def _check(self, change: Change, service: ReviewService, epoch: int) -> None:
        try:
            detail = await service.fetch_change_detail(change.change_id)
        except ReviewServiceError as exc:
            log.info("Merge check for change %s failed, skipping: %s", change.number, exc)
            return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("Unexpected error checking change %s: %s", change.number, exc)
            return

        if detail is None or not detail.is_merged:
            log.debug("Change %s left the queue without being merged", change.number)
            return

        merged_by = detail.merged_by
        if merged_by is None or merged_by == detail.owner.name:
            log.debug("Change %s merged by its owner", change.number)
            return

        log.info("Change %s merged by %s", change.number, merged_by)
        await self._notify(merged_by_other_notification(detail), epoch)

    async def wait_idle(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
