"""Tests for the asyncio-backed and fake-clock schedulers."""

from __future__ import annotations

import asyncio

import pytest

from request_queue.execution.scheduler import AsyncioScheduler, ManualScheduler, Scheduler


class TestManualScheduler:

    def test_satisfies_protocol(self):
        assert isinstance(ManualScheduler(), Scheduler)

    def test_call_soon_runs_on_run_ready(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_soon(calls.append, 1)
        assert calls == []
        assert scheduler.run_ready() == 1
        assert calls == [1]

    def test_same_instant_runs_in_schedule_order(self):
        scheduler = ManualScheduler()
        calls = []
        for i in range(5):
            scheduler.call_soon(calls.append, i)
        scheduler.run_ready()
        assert calls == [0, 1, 2, 3, 4]

    def test_run_ready_includes_callbacks_scheduled_meanwhile(self):
        scheduler = ManualScheduler()
        calls = []

        def first():
            calls.append("first")
            scheduler.call_soon(calls.append, "second")

        scheduler.call_soon(first)
        assert scheduler.run_ready() == 2
        assert calls == ["first", "second"]

    def test_call_later_waits_for_clock(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, calls.append, "tick")

        scheduler.advance(0.5)
        assert calls == []
        assert scheduler.now() == 0.5

        scheduler.advance(0.5)
        assert calls == ["tick"]
        assert scheduler.now() == 1.0

    def test_timers_fire_in_deadline_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2.0, calls.append, "late")
        scheduler.call_later(1.0, calls.append, "early")
        scheduler.advance(5.0)
        assert calls == ["early", "late"]

    def test_clock_observed_by_callback(self):
        scheduler = ManualScheduler()
        seen = []
        scheduler.call_later(2.0, lambda: seen.append(scheduler.now()))
        scheduler.advance(10.0)
        assert seen == [2.0]
        assert scheduler.now() == 10.0

    def test_negative_delay_clamped(self):
        scheduler = ManualScheduler(start=5.0)
        calls = []
        scheduler.call_later(-1.0, calls.append, 1)
        scheduler.run_ready()
        assert calls == [1]

    def test_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_later(1.0, calls.append, 1)
        assert scheduler.pending == 1
        handle.cancel()
        assert scheduler.pending == 0
        assert scheduler.advance(2.0) == 0
        assert calls == []


class TestAsyncioScheduler:

    def test_satisfies_protocol(self):
        assert isinstance(AsyncioScheduler(), Scheduler)

    def test_requires_running_loop_without_explicit_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().now()

    @pytest.mark.asyncio
    async def test_call_soon_is_deferred(self):
        scheduler = AsyncioScheduler()
        calls = []
        scheduler.call_soon(calls.append, 1)
        assert calls == []
        await asyncio.sleep(0)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_call_later(self):
        scheduler = AsyncioScheduler()
        fired = asyncio.Event()
        start = scheduler.now()
        scheduler.call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)
        assert scheduler.now() - start >= 0.01 - 1e-3

    @pytest.mark.asyncio
    async def test_explicit_loop(self):
        loop = asyncio.get_running_loop()
        scheduler = AsyncioScheduler(loop)
        assert scheduler.loop is loop
