"""Task models — state, snapshots, outcomes and completions.

ARCHITECTURE
────────────
::

    TaskState          ─ pending / running / awaiting_retry
    TaskSnapshot       ─ what a strategy sees: (payload, running)
    TaskInfo           ─ read-only view of a queued task (introspection)

    Outcome = Success(value) | Retry() | Failure(error, status_code)
      sent by a runner through its single-use ``settle`` channel

    Completion         ─ what the task's completion callback receives

State machine per task::

    PENDING ──select──► RUNNING ──Success──► (removed, processed)
                          │  ├────Failure──► (removed, failure)
                          │  └────Retry────► AWAITING_RETRY ──wait_time──► PENDING
                          │                  (or removed, failure, when attempts
                          │                   reached max_attempts)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class TaskState(str, Enum):
    """Lifecycle state of a queued task.

    Terminal states are not stored: completing a task removes it.
    """

    PENDING = "pending"
    RUNNING = "running"
    AWAITING_RETRY = "awaiting_retry"

    @property
    def running(self) -> bool:
        """Whether the task is ineligible for selection."""
        return self is not TaskState.PENDING


@dataclass(frozen=True, slots=True)
class TaskSnapshot(Generic[T]):
    """Immutable per-task view handed to selection strategies."""

    payload: T
    running: bool


@dataclass(frozen=True, slots=True)
class TaskInfo(Generic[T]):
    """Read-only view of a queued task."""

    task_id: int
    payload: T
    state: TaskState
    attempts: int

    @property
    def running(self) -> bool:
        return self.state.running


# ── Outcomes ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Success:
    """The attempt produced a value; the task is done."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Retry:
    """The attempt failed transiently; try again after the retry delay."""

    reason: BaseException | None = None


@dataclass(frozen=True, slots=True)
class Failure:
    """The attempt failed terminally; the task is done.

    ``error`` may be None, in which case the caller receives
    :class:`~request_queue.core.errors.UnknownError`.
    """

    error: BaseException | None = None
    status_code: int | None = None


Outcome = Union[Success, Retry, Failure]


# ── Completion ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Completion:
    """Final result of a task, delivered to its completion callback."""

    task_id: int
    attempts: int
    value: Any = None
    error: BaseException | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / CLI output."""
        result: dict[str, Any] = {
            "task_id": self.task_id,
            "attempts": self.attempts,
            "ok": self.ok,
        }
        if self.ok:
            result["value"] = self.value
        else:
            result["error"] = str(self.error)
            result["error_type"] = type(self.error).__name__
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result
