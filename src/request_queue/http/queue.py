"""Request Queue — awaitable HTTP requests scheduled through a TaskQueue.

WHY
───
Application code wants ``await queue.post("/orders", order)`` and
nothing more. Behind that call the request becomes a task in a
:class:`~request_queue.execution.task_queue.TaskQueue`: the active
strategy decides when it may start (by default reads run freely while
writes run one at a time in submission order), transient failures are
retried after a fixed delay, and the caller's future resolves or
rejects exactly once.

ARCHITECTURE
────────────
::

    RequestQueue(transport, strategy=..., retry_timeout=..., max_retries=...)
      ├── .request(method, url, data, options) → asyncio.Future
      ├── .get / .post / .delete               ─ sugar over request()
      ├── .on_queue_length_change(cb)          ─ cb(length)
      ├── .on_queue_updated(cb)                ─ cb(QueueEvent)
      ├── .filter(predicate, method=, url=)    ─ queued entries snapshot
      ├── .length / .status                    ─ queue size
      └── .drain()                             ─ wait until empty

    Runner (one per attempt):
      unsupported method      → Failure(UnsupportedMethod), transport untouched
      transport.send(...)     → Success(body)
        raises retryable      → Retry()
        raises ClientFailure  → Failure(err, status_code)
        raises anything else  → Failure(err)

Example::

    async with HttpxTransport(base_url="https://api.example.com") as transport:
        queue = RequestQueue(transport, retry_timeout=0.5, max_retries=10)
        queue.on_queue_length_change(lambda n: print("pending:", n))
        created = await queue.post("/orders", {"sku": "A-1"})
        order = await queue.get(f"/orders/{created['id']}")
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..core.config import QueueSettings, get_settings
from ..core.errors import ClientFailure, RequestQueueError, UnknownError, UnsupportedMethod
from ..core.logging import get_logger, log_context
from ..execution.events import QueueEvent
from ..execution.models import Completion, Failure, Outcome, Retry, Success, TaskInfo, TaskState
from ..execution.retry import FixedDelayRetry
from ..execution.scheduler import Scheduler
from ..execution.strategies import SelectFn, SelectionStrategy
from ..execution.task_queue import Settle, TaskQueue
from .transport import Transport, TransportRequest

SUPPORTED_METHODS = frozenset({"GET", "POST", "DELETE"})


@dataclass(frozen=True)
class RequestPayload:
    """Opaque task payload for one HTTP request."""

    method: str
    url: str
    data: Any = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueuedRequest:
    """Read-only view of a queued request."""

    task_id: int
    method: str
    url: str
    data: Any
    options: dict[str, Any]
    state: TaskState
    attempts: int

    @property
    def running(self) -> bool:
        return self.state.running

    @classmethod
    def from_task(cls, info: TaskInfo) -> QueuedRequest:
        payload: RequestPayload = info.payload
        return cls(
            task_id=info.task_id,
            method=payload.method,
            url=payload.url,
            data=payload.data,
            options=dict(payload.options),
            state=info.state,
            attempts=info.attempts,
        )


@dataclass(frozen=True)
class QueueStatus:
    """Queue size broken down by task state."""

    length: int
    pending: int = 0
    running: int = 0
    awaiting_retry: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "length": self.length,
            "pending": self.pending,
            "running": self.running,
            "awaiting_retry": self.awaiting_retry,
        }


def classify_exception(exc: BaseException) -> Outcome:
    """Map a transport exception to a task outcome."""
    if isinstance(exc, RequestQueueError) and exc.retryable:
        return Retry(reason=exc)
    if isinstance(exc, ClientFailure):
        return Failure(exc, exc.status_code)
    return Failure(exc)


class RequestQueue:
    """Promise-style HTTP request API on top of a retrying task queue.

    Unset options default field by field from :class:`QueueSettings`.

    Parameters
    ----------
    transport : Transport | async callable
        Object with ``async send(TransportRequest)`` or a bare coroutine
        function taking a :class:`TransportRequest`.
    strategy : SelectionStrategy | callable | str | None
        Selection strategy (default from settings: ``sequentialPost``).
    retry_timeout : float | None
        Seconds between a transient failure and the next attempt.
    max_retries : int | None
        Attempts per request before ``MaxRetriesExceeded``.
    scheduler : Scheduler | None
        Deferred execution backend for the underlying task queue.
    logger : structlog logger | None
        Logger used instead of the module logger.
    settings : QueueSettings | None
        Settings to default from (default: :func:`get_settings`).
    """

    def __init__(
        self,
        transport: Transport | Callable[[TransportRequest], Any],
        *,
        strategy: SelectionStrategy | SelectFn | str | None = None,
        retry_timeout: float | None = None,
        max_retries: int | None = None,
        scheduler: Scheduler | None = None,
        logger: Any = None,
        settings: QueueSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._log = logger if logger is not None else get_logger(__name__)
        self._send = transport.send if hasattr(transport, "send") else transport
        self._transport = transport

        retry = FixedDelayRetry(
            max_attempts=max_retries if max_retries is not None else settings.max_retries,
            wait_time=retry_timeout if retry_timeout is not None else settings.retry_timeout,
        )
        self._queue = TaskQueue(
            strategy if strategy is not None else settings.strategy,
            retry=retry,
            scheduler=scheduler,
            logger=self._log,
        )
        self._inflight: set[asyncio.Future] = set()

    # ── Requests ─────────────────────────────────────────────────────

    def request(
        self,
        method: str,
        url: str,
        data: Any = None,
        options: dict[str, Any] | None = None,
    ) -> asyncio.Future:
        """Queue a request and return a future for its response body.

        The future raises :class:`UnsupportedMethod`, the transport's
        :class:`ClientFailure` (or other terminal error), or
        :class:`MaxRetriesExceeded`.

        Must be called while an event loop is running.
        """
        future = asyncio.get_running_loop().create_future()
        payload = RequestPayload(
            method=method.upper(),
            url=url,
            data=data,
            options=dict(options or {}),
        )
        on_complete = functools.partial(self._resolve, future, payload)
        task_id = self._queue.add(payload, self._run, on_complete)
        self._log.info(
            "request_queue.added",
            task_id=task_id,
            method=payload.method,
            url=url,
            length=self._queue.length,
        )
        return future

    def get(self, url: str, options: dict[str, Any] | None = None) -> asyncio.Future:
        return self.request("GET", url, options=options)

    def post(self, url: str, data: Any = None, options: dict[str, Any] | None = None) -> asyncio.Future:
        return self.request("POST", url, data, options)

    def delete(self, url: str, options: dict[str, Any] | None = None) -> asyncio.Future:
        return self.request("DELETE", url, options=options)

    # ── Runner ───────────────────────────────────────────────────────

    def _run(self, payload: RequestPayload, settle: Settle) -> None:
        # the send task and its done-callbacks inherit this binding
        with log_context(method=payload.method, url=payload.url):
            if payload.method not in SUPPORTED_METHODS:
                self._log.warning("request_queue.unsupported")
                settle(Failure(UnsupportedMethod(payload.method).with_context(url=payload.url)))
                return

            self._log.debug("request_queue.sending")
            request = TransportRequest(
                method=payload.method,
                url=payload.url,
                data=payload.data,
                options=payload.options,
            )
            sent = asyncio.ensure_future(self._send(request))
            self._inflight.add(sent)
            sent.add_done_callback(self._inflight.discard)
            sent.add_done_callback(functools.partial(self._on_sent, settle))

    def _on_sent(self, settle: Settle, sent: asyncio.Future) -> None:
        if sent.cancelled():
            settle(Failure(UnknownError("Transport call was cancelled")))
            return

        exc = sent.exception()
        if exc is None:
            settle(Success(sent.result()))
            return

        outcome = classify_exception(exc)
        if isinstance(outcome, Retry):
            self._log.info("request_queue.transient_failure", error=str(exc))
        settle(outcome)

    def _resolve(self, future: asyncio.Future, payload: RequestPayload, completion: Completion) -> None:
        with log_context(task_id=completion.task_id, method=payload.method, url=payload.url):
            if future.done():
                # cancelled by the caller; the task itself ran to the end
                self._log.debug("request_queue.result_discarded")
                return

            if completion.ok:
                self._log.debug("request_queue.completed", attempts=completion.attempts)
                future.set_result(completion.value)
                return

            error = completion.error
            if isinstance(error, RequestQueueError):
                if error.context.url is None:
                    error.with_context(url=payload.url)
                if error.context.method is None:
                    error.with_context(method=payload.method)
            self._log.warning(
                "request_queue.failed",
                attempts=completion.attempts,
                error=str(error),
                status_code=completion.status_code,
            )
            future.set_exception(error)

    # ── Events & inspection ──────────────────────────────────────────

    def on_queue_length_change(self, callback: Callable[[int], Any]) -> str:
        """Call ``callback(length)`` after every insertion and removal."""
        return self._queue.on_queue_updated(lambda event: callback(event.length))

    def on_queue_updated(self, callback: Callable[[QueueEvent], Any]) -> str:
        """Call ``callback(event)`` with the full :class:`QueueEvent`."""
        return self._queue.on_queue_updated(callback)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._queue.unsubscribe(subscription_id)

    def filter(
        self,
        predicate: Callable[[QueuedRequest], bool] | None = None,
        *,
        method: str | None = None,
        url: str | None = None,
    ) -> list[QueuedRequest]:
        """Return queued requests matching every given condition."""
        matches = []
        for info in self._queue.tasks():
            entry = QueuedRequest.from_task(info)
            if method is not None and entry.method != method.upper():
                continue
            if url is not None and entry.url != url:
                continue
            if predicate is not None and not predicate(entry):
                continue
            matches.append(entry)
        return matches

    @property
    def length(self) -> int:
        return self._queue.length

    @property
    def status(self) -> QueueStatus:
        counts = self._queue.status()
        return QueueStatus(
            length=counts["length"],
            pending=counts[TaskState.PENDING.value],
            running=counts[TaskState.RUNNING.value],
            awaiting_retry=counts[TaskState.AWAITING_RETRY.value],
        )

    @property
    def task_queue(self) -> TaskQueue:
        return self._queue

    async def drain(self) -> None:
        """Wait until the queue is empty. Nothing is cancelled.

        Requests queued while draining, including follow-ups queued from
        a completed future's callbacks, are waited for as well.
        """
        loop = asyncio.get_running_loop()
        while self._queue.length:
            emptied = loop.create_future()

            def _check(event: QueueEvent, emptied: asyncio.Future = emptied) -> None:
                if self._queue.length == 0 and not emptied.done():
                    emptied.set_result(None)

            sub_id = self._queue.on_queue_updated(_check)
            try:
                await emptied
            finally:
                self._queue.unsubscribe(sub_id)
            # one more turn so done-callbacks of the last futures can queue follow-ups
            await asyncio.sleep(0)
