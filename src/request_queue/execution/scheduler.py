"""Schedulers — the deferred-execution dependency of the task queue.

WHY
───
The task queue never runs a scheduling pass, a completion callback or
an event listener synchronously inside the call that triggered it.
Everything is deferred to the next turn of the loop (``call_soon``)
or to a timer (``call_later``, used for the fixed retry delay).
Injecting the scheduler instead of calling ``asyncio`` directly lets
tests replace real timers with a deterministic fake clock.

ARCHITECTURE
────────────
::

    Scheduler (Protocol)
      ├── .call_soon(fn, *args)          ─ next turn
      ├── .call_later(delay, fn, *args)  ─ after ``delay`` seconds
      └── .now()                         ─ scheduler clock

    AsyncioScheduler  ─ event loop backed (production)
    ManualScheduler   ─ fake clock, advanced explicitly (tests)

Example::

    scheduler = ManualScheduler()
    scheduler.call_later(1.0, print, "tick")
    scheduler.advance(0.5)   # nothing yet
    scheduler.advance(0.5)   # prints "tick"
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cancellable(Protocol):
    """Handle returned by a scheduler; ``asyncio.Handle`` satisfies it."""

    def cancel(self) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """Deferred execution of callbacks on a single logical thread.

    Callbacks scheduled for the same instant run in the order they
    were scheduled.
    """

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Cancellable:
        """Run ``callback(*args)`` on the next turn."""
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable:
        """Run ``callback(*args)`` after ``delay`` seconds."""
        ...

    def now(self) -> float:
        """Current scheduler time in seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Without an explicit ``loop`` the running loop is looked up on every
    call, so the scheduler can be built outside of a coroutine and used
    later from inside one.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        return self.loop.call_soon(callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)

    def now(self) -> float:
        return self.loop.time()


@dataclass(order=True)
class ScheduledCall:
    """A pending callback in a :class:`ManualScheduler`."""

    when: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic fake-clock scheduler for tests.

    Time only moves when :meth:`advance` is called. :meth:`run_ready`
    drains everything that is due at the current instant, including
    callbacks scheduled by the callbacks it runs.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[ScheduledCall] = []
        self._seq = itertools.count()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        return self.call_later(0.0, callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        entry = ScheduledCall(
            when=self._now + max(0.0, delay),
            seq=next(self._seq),
            callback=callback,
            args=args,
        )
        heapq.heappush(self._queue, entry)
        return entry

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to run."""
        return sum(1 for entry in self._queue if not entry.cancelled)

    def _run_until(self, deadline: float) -> int:
        ran = 0
        while self._queue and self._queue[0].when <= deadline:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = max(self._now, entry.when)
            entry.callback(*entry.args)
            ran += 1
        return ran

    def run_ready(self) -> int:
        """Run every callback due now. Returns how many ran."""
        return self._run_until(self._now)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running callbacks as their time comes."""
        deadline = self._now + seconds
        ran = self._run_until(deadline)
        self._now = deadline
        return ran
