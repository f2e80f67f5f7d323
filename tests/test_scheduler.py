"""Tests for the repeating poll timer."""

from __future__ import annotations

import asyncio

import pytest

from review_monitor.config import REFRESH_FREQUENCIES
from review_monitor.scheduler import PollScheduler


class TestPollScheduler:
    def test_rejects_interval_outside_allow_list(self):
        async def tick():
            pass

        with pytest.raises(ValueError):
            PollScheduler(tick, interval_minutes=2)

    def test_accepts_every_allowed_interval(self):
        async def tick():
            pass

        for minutes in REFRESH_FREQUENCIES:
            assert PollScheduler(tick, minutes).interval_seconds == minutes * 60

    def test_first_tick_fires_immediately(self):
        calls = []

        async def tick():
            calls.append("tick")

        async def scenario():
            scheduler = PollScheduler(tick, interval_minutes=60)
            scheduler.start()
            for _ in range(3):
                await asyncio.sleep(0)
            await scheduler.wait_idle()
            running = scheduler.running
            scheduler.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert calls == ["tick"]

    def test_stop_does_not_cancel_running_tick(self):
        gate_holder = {}
        finished = []

        async def tick():
            await gate_holder["gate"].wait()
            finished.append(True)

        async def scenario():
            gate_holder["gate"] = asyncio.Event()
            scheduler = PollScheduler(tick)
            scheduler.start()
            for _ in range(3):
                await asyncio.sleep(0)
            scheduler.stop()
            assert not scheduler.running
            gate_holder["gate"].set()
            await scheduler.wait_idle()

        asyncio.run(scenario())
        assert finished == [True]

    def test_start_twice_keeps_one_timer(self):
        calls = []

        async def tick():
            calls.append(1)

        async def scenario():
            scheduler = PollScheduler(tick)
            scheduler.start()
            scheduler.start()
            for _ in range(3):
                await asyncio.sleep(0)
            await scheduler.wait_idle()
            scheduler.stop()

        asyncio.run(scenario())
        assert calls == [1]

    def test_failing_tick_is_contained(self):
        async def tick():
            raise RuntimeError("boom")

        async def scenario():
            scheduler = PollScheduler(tick)
            scheduler.start()
            for _ in range(3):
                await asyncio.sleep(0)
            await scheduler.wait_idle()
            running = scheduler.running
            scheduler.stop()
            return running

        assert asyncio.run(scenario()) is True
