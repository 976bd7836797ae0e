"""
Scripted fakes for deterministic queue tests.

Usage in test code::

    from tests._support.fakes import FakeTransport, ManualRunner

    transport = FakeTransport()
    transport.script("GET", "/flaky", TransientFailure("503"), TransientFailure("503"), {"ok": True})
    transport.delay("/slow", 0.02)

    runner = ManualRunner()
    queue.add("a", runner, completions.append)
    scheduler.run_ready()
    runner.settle("a", Success(1))
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, NamedTuple

from request_queue.execution.models import Outcome
from request_queue.http.transport import TransportRequest


class Req(NamedTuple):
    """Hashable stand-in for a request payload."""

    method: str
    name: str


class FakeTransport:
    """Transport whose responses are scripted per (method, url).

    Each scripted result is consumed in order; the last one repeats.
    Exceptions are raised, anything else is returned. Unscripted
    requests return ``{"method": ..., "url": ...}``.
    """

    def __init__(self) -> None:
        self.calls: list[TransportRequest] = []
        self.log: list[tuple[str, str]] = []
        self._scripts: dict[tuple[str, str], list[Any]] = {}
        self._delays: dict[str, float] = {}
        self.gate: asyncio.Event | None = None

    def script(self, method: str, url: str, *results: Any) -> None:
        self._scripts[(method, url)] = list(results)

    def delay(self, url: str, seconds: float) -> None:
        self._delays[url] = seconds

    def calls_for(self, url: str) -> int:
        return sum(1 for call in self.calls if call.url == url)

    async def send(self, request: TransportRequest) -> Any:
        self.calls.append(request)
        self.log.append(("start", request.url))
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self._delays.get(request.url, 0))

            results = self._scripts.get((request.method, request.url))
            if results:
                result = results.pop(0) if len(results) > 1 else results[0]
            else:
                result = {"method": request.method, "url": request.url}
        finally:
            self.log.append(("end", request.url))

        if isinstance(result, BaseException):
            raise result
        return result


class ManualRunner:
    """Task-queue runner whose attempts are settled by the test."""

    def __init__(self) -> None:
        self.calls: list[Any] = []
        self._channels: dict[Any, list] = defaultdict(list)

    def __call__(self, payload: Any, settle) -> None:
        self.calls.append(payload)
        self._channels[payload].append(settle)

    def settle(self, payload: Any, outcome: Outcome) -> None:
        """Report the outcome of the oldest open attempt for ``payload``."""
        self._channels[payload].pop(0)(outcome)

    def open_attempts(self, payload: Any) -> int:
        return len(self._channels[payload])
