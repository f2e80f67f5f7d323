"""Builders and fakes shared by the test modules."""

from __future__ import annotations

import asyncio

from review_monitor.models import Author, Change, Message
from review_monitor.service import ReviewServiceError

ME = Author(name="Me", is_local_user=True, account_id=1, username="me")
ALICE = Author(name="Alice", account_id=2, username="alice")
BOB = Author(name="Bob", account_id=3, username="bob")


def msg(author: Author, text: str) -> Message:
    return Message(author=author, text=text)


def make_change(
    id="proj~master~I1",
    number=1,
    owner=ALICE,
    messages=(),
    mergeable=True,
    subject="Fix login redirect",
    status="NEW",
    change_id="I1",
    work_in_progress=False,
    submitter=None,
):
    return Change(
        id=id,
        number=number,
        subject=subject,
        owner=owner,
        messages=tuple(messages),
        status=status,
        mergeable=mergeable,
        change_id=change_id,
        work_in_progress=work_in_progress,
        submitter=submitter,
    )


class FakeService:
    """In-memory ReviewService. Set `changes` or `error` before each fetch."""

    def __init__(self, changes=None, details=None):
        self.changes = list(changes or [])
        self.details = dict(details or {})
        self.error: Exception | None = None
        self.detail_error: Exception | None = None
        self.list_calls = 0
        self.detail_calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.detail_gate: asyncio.Event | None = None

    async def fetch_change_list(self):
        self.list_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.changes)

    async def fetch_change_detail(self, change_id):
        self.detail_calls.append(change_id)
        if self.detail_gate is not None:
            await self.detail_gate.wait()
        if self.detail_error is not None:
            raise self.detail_error
        return self.details.get(change_id)


class RecordingSink:
    def __init__(self):
        self.delivered = []

    async def deliver(self, notification):
        self.delivered.append(notification)

    def titles(self):
        return [n.title for n in self.delivered]


class FailingSink:
    async def deliver(self, notification):
        raise RuntimeError("notification center unavailable")


class RecordingObserver:
    def __init__(self):
        self.counts: list[int] = []
        self.lists: list[list] = []

    def on_review_list_updated(self, entries):
        self.lists.append(entries)

    def on_new_events_count(self, count):
        self.counts.append(count)


NETWORK_ERROR = ReviewServiceError("ClientConnectorError: connection refused")
