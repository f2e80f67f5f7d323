
# output layer: where notifications and the review list leave the core.

# Notification sinks implement
#     async def deliver(self, notification: Notification) -> None: ...
# and list observers implement
#     def on_review_list_updated(self, entries: list[ViewEntry]) -> None: ...
#     def on_new_events_count(self, count: int) -> None: ...
#
# the models carry no display logic; all formatting lives here.

import logging
from datetime import datetime, timezone

from review_monitor.models import Notification, NotificationKind, ViewEntry

log = logging.getLogger(__name__)

# ─── Kind colour map (ANSI — safe to strip if plain output is needed) ─────────

_R = "\033[0m"   # reset

_KIND_COLOR: dict[NotificationKind, str] = {
    NotificationKind.NEW_INCOMING_REVIEW: "\033[34m",   # blue
    NotificationKind.MERGE_CONFLICT:      "\033[31m",   # red
    NotificationKind.REVIEW_EVENT:        "\033[33m",   # yellow
    NotificationKind.MERGED_BY_OTHER:     "\033[32m",   # green
}


def _ts() -> str:
    """ISO 8601 UTC timestamp, e.g. 2026-02-21T12:39:08Z"""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _color_kind(kind: NotificationKind) -> str:
    label = kind.value.upper()
    c = _KIND_COLOR.get(kind, "")
    return f"{c}{label}{_R}" if c else label


class ConsoleNotificationSink:
    """
    Prints one line per notification to stdout.

    Format:
        [2026-02-21T12:39:08Z] REVIEW_EVENT | Jane Doe Code-Review+2 (1 Comment) | #4711 Fix login redirect

    Subject truncated at 100 chars; the change link is one click away.
    """

    _MAX_SUBJECT_LEN = 100

    def __init__(self, base_url: str | None = None) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None

    async def deliver(self, notification: Notification) -> None:
        print(self._format(notification), flush=True)

    def _format(self, n: Notification) -> str:
        number = f"#{n.change_number} " if n.change_number is not None else ""
        line = f"[{_ts()}] {_color_kind(n.kind)} | {n.title} | {number}{self._truncate(n.body)}"
        if self._base_url and n.change_number is not None:
            line += f" | {self._base_url}/c/{n.change_number}"
        return line

    def _truncate(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self._MAX_SUBJECT_LEN:
            return text
        return text[: self._MAX_SUBJECT_LEN - 1].rstrip() + "…"


class ConsoleReviewListPresenter:
    """Logs the review list and unread count whenever the watcher broadcasts."""

    def __init__(self) -> None:
        self.count = 0

    def on_review_list_updated(self, entries: list[ViewEntry]) -> None:
        for entry in entries:
            marker = "*" if entry.has_new_event else " "
            owner  = "me" if entry.change.is_ours else entry.change.owner.name
            log.debug("%s #%s [%s] %s", marker, entry.change.number, owner, entry.change.subject)

    def on_new_events_count(self, count: int) -> None:
        if count != self.count:
            log.info("Unread reviews: %d", count)
        self.count = count
