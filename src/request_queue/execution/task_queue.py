"""Task Queue — ordered, strategy-driven, retrying execution of opaque work.

WHY
───
Callers submit units of work faster than they may safely run. The
task queue keeps them in submission order, asks a pluggable
:class:`~request_queue.execution.strategies.SelectionStrategy` which
ones may start, runs the selected ones through a caller-supplied
runner, and retries transient failures after a fixed delay until an
attempt ceiling is reached.

ARCHITECTURE
────────────
::

    TaskQueue(strategy, retry=FixedDelayRetry(), scheduler=AsyncioScheduler())
      ├── .add(payload, runner, on_complete) ─ enqueue, defer a pass
      ├── .length / .tasks() / .status()      ─ introspection
      ├── .on_queue_updated(listener)         ─ QueueEvent subscription
      └── ._process()                         ─ one scheduling pass

    Scheduling pass:
      snapshot [(payload, running), ...]
        → strategy.select(snapshot) → [bool, ...]
        → for each selected PENDING task:
             state=RUNNING, attempts += 1, runner(payload, settle)

    Runner protocol:
      runner(payload, settle) where settle is single-use and accepts
      one Outcome: Success(value) | Retry() | Failure(error, code)

    Passes are triggered by add(), by every removal and by every retry
    timer, always through the scheduler, never re-entrantly.

Example::

    queue = TaskQueue(ParallelStrategy(), retry=FixedDelayRetry(max_attempts=3))

    def runner(payload, settle):
        settle(Success(payload * 2))

    queue.add(21, runner, lambda completion: print(completion.value))
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.errors import MaxRetriesExceeded, OutcomeAlreadySettled, StrategyError, UnknownError
from ..core.logging import get_logger, log_context
from .events import QueueAction, QueueEvent, QueueEventEmitter, QueueListener
from .models import Completion, Failure, Outcome, Retry, Success, TaskInfo, TaskSnapshot, TaskState
from .retry import FixedDelayRetry
from .scheduler import AsyncioScheduler, Cancellable, Scheduler
from .strategies import SelectFn, SelectionStrategy, resolve_strategy

Settle = Callable[[Outcome], None]
Runner = Callable[[Any, Settle], Any]
CompletionCallback = Callable[[Completion], Any]


@dataclass(eq=False)
class QueuedTask:
    """A task owned by the queue. Mutated only by the queue itself."""

    id: int
    payload: Any
    runner: Runner
    on_complete: CompletionCallback
    state: TaskState = TaskState.PENDING
    attempts: int = 0
    removed: bool = False
    retry_handle: Cancellable | None = None

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(payload=self.payload, running=self.state.running)

    def info(self) -> TaskInfo:
        return TaskInfo(task_id=self.id, payload=self.payload, state=self.state, attempts=self.attempts)


class SettleChannel:
    """Single-use channel through which a runner reports its outcome."""

    __slots__ = ("_queue", "_task", "settled")

    def __init__(self, queue: TaskQueue, task: QueuedTask) -> None:
        self._queue = queue
        self._task = task
        self.settled = False

    def __call__(self, outcome: Outcome) -> None:
        if not isinstance(outcome, (Success, Retry, Failure)):
            raise TypeError(f"Expected Success, Retry or Failure, got {outcome!r}")
        if self.settled:
            raise OutcomeAlreadySettled(
                f"Task {self._task.id} already reported an outcome"
            ).with_context(task_id=self._task.id, attempts=self._task.attempts)
        self.settled = True
        self._queue._settle(self._task, outcome)


class TaskQueue:
    """Insertion-ordered retrying queue with pluggable admission control.

    Parameters
    ----------
    strategy : SelectionStrategy | callable | str | None
        Which tasks may start on each pass (default ``sequentialPost``).
    retry : FixedDelayRetry
        Attempt ceiling and fixed delay between attempts.
    scheduler : Scheduler
        Deferred execution backend (default :class:`AsyncioScheduler`).
    """

    def __init__(
        self,
        strategy: SelectionStrategy | SelectFn | str | None = None,
        *,
        retry: FixedDelayRetry | None = None,
        scheduler: Scheduler | None = None,
        logger: Any = None,
    ) -> None:
        self._strategy = resolve_strategy(strategy)
        self._retry = retry or FixedDelayRetry()
        self._scheduler = scheduler or AsyncioScheduler()
        self._log = logger if logger is not None else get_logger(__name__)
        self._tasks: list[QueuedTask] = []
        self._seq = itertools.count()
        self._events = QueueEventEmitter(self._scheduler)
        self._pass_scheduled = False

    # ── Submission ───────────────────────────────────────────────────

    def add(self, payload: Any, runner: Runner, on_complete: CompletionCallback) -> int:
        """Append a task at the tail and schedule a pass.

        Args:
            payload: Opaque unit of work handed to ``runner``
            runner: ``runner(payload, settle)``; must call ``settle`` once per attempt
            on_complete: Receives the task's :class:`Completion`, always deferred

        Returns:
            The new task id
        """
        task = QueuedTask(id=next(self._seq), payload=payload, runner=runner, on_complete=on_complete)
        self._tasks.append(task)

        self._log.debug("task_queue.added", task_id=task.id, length=len(self._tasks))
        self._events.emit(QueueEvent(QueueAction.ADDED, task.id, len(self._tasks)))
        self._schedule_pass()
        return task.id

    # ── Scheduling ───────────────────────────────────────────────────

    def _schedule_pass(self) -> None:
        if self._pass_scheduled:
            return
        self._pass_scheduled = True
        self._scheduler.call_soon(self._process)

    def _process(self) -> None:
        """Run one scheduling pass."""
        self._pass_scheduled = False
        if not self._tasks:
            return

        tasks = list(self._tasks)
        try:
            decisions = list(self._strategy.select([task.snapshot() for task in tasks]))
        except Exception as e:
            self._reject_pending(f"Strategy {self._strategy.name!r} failed: {e}", cause=e)
            return
        if len(decisions) != len(tasks):
            self._reject_pending(
                f"Strategy {self._strategy.name!r} returned {len(decisions)} decisions "
                f"for {len(tasks)} tasks"
            )
            return

        self._log.debug(
            "task_queue.pass",
            length=len(tasks),
            running=sum(1 for task in tasks if task.state.running),
            selected=sum(1 for d in decisions if d),
        )

        for task, selected in zip(tasks, decisions):
            if selected and not task.removed and task.state is TaskState.PENDING:
                self._launch(task)

    def _reject_pending(self, message: str, cause: BaseException | None = None) -> None:
        """Fail every task waiting for admission with a :class:`StrategyError`.

        Running tasks and tasks waiting out a retry delay are left alone;
        they meet the same strategy on their next pass.
        """
        pending = [task for task in self._tasks if task.state is TaskState.PENDING]
        self._log.error(
            "task_queue.strategy_error",
            strategy=self._strategy.name,
            error=message,
            rejected=len(pending),
        )
        for task in pending:
            error = StrategyError(message, cause=cause).with_context(task_id=task.id)
            self._remove(task, QueueAction.FAILURE)
            self._complete(task, Completion(task.id, task.attempts, error=error))

    def _launch(self, task: QueuedTask) -> None:
        task.state = TaskState.RUNNING
        task.attempts += 1
        settle = SettleChannel(self, task)

        with log_context(task_id=task.id, attempt=task.attempts):
            self._log.debug("task_queue.launch")
            try:
                task.runner(task.payload, settle)
            except Exception as e:
                if settle.settled:
                    raise
                self._log.warning("task_queue.runner_error", error=str(e))
                settle(Failure(e))

    # ── Outcomes ─────────────────────────────────────────────────────

    def _settle(self, task: QueuedTask, outcome: Outcome) -> None:
        if task.removed:
            self._log.warning("task_queue.unknown_task", task_id=task.id)
            return

        if isinstance(outcome, Success):
            self._remove(task, QueueAction.PROCESSED)
            self._complete(task, Completion(task.id, task.attempts, value=outcome.value))

        elif isinstance(outcome, Retry):
            if not self._retry.should_retry(task.attempts):
                self._log.warning("task_queue.max_retries", task_id=task.id, attempts=task.attempts)
                self._remove(task, QueueAction.FAILURE)
                error = MaxRetriesExceeded(task.attempts, cause=outcome.reason).with_context(task_id=task.id)
                self._complete(task, Completion(task.id, task.attempts, error=error))
                return

            delay = self._retry.next_delay(task.attempts)
            task.state = TaskState.AWAITING_RETRY
            task.retry_handle = self._scheduler.call_later(delay, self._retry_due, task)
            self._log.info(
                "task_queue.retry_scheduled",
                task_id=task.id,
                attempts=task.attempts,
                delay=delay,
            )

        else:
            error = outcome.error
            if error is None:
                error = UnknownError().with_context(task_id=task.id, attempts=task.attempts)
            self._remove(task, QueueAction.FAILURE)
            self._complete(
                task,
                Completion(task.id, task.attempts, error=error, status_code=outcome.status_code),
            )

    def _retry_due(self, task: QueuedTask) -> None:
        task.retry_handle = None
        if task.removed:
            return
        task.state = TaskState.PENDING
        self._schedule_pass()

    def _remove(self, task: QueuedTask, action: QueueAction) -> None:
        self._tasks.remove(task)
        task.removed = True

        self._log.debug("task_queue.removed", task_id=task.id, action=action.value, length=len(self._tasks))
        self._events.emit(QueueEvent(action, task.id, len(self._tasks)))
        self._schedule_pass()

    def _complete(self, task: QueuedTask, completion: Completion) -> None:
        self._scheduler.call_soon(task.on_complete, completion)

    # ── Inspection ───────────────────────────────────────────────────

    def on_queue_updated(self, listener: QueueListener) -> str:
        """Subscribe to :class:`QueueEvent` notifications."""
        return self._events.subscribe(listener)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._events.unsubscribe(subscription_id)

    @property
    def length(self) -> int:
        """Number of queued tasks, running ones included."""
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def tasks(self) -> list[TaskInfo]:
        """Read-only snapshot of the queue, in insertion order."""
        return [task.info() for task in self._tasks]

    def status(self) -> dict[str, int]:
        """Task counts per state plus the total length."""
        counts = {state.value: 0 for state in TaskState}
        for task in self._tasks:
            counts[task.state.value] += 1
        counts["length"] = len(self._tasks)
        return counts

    @property
    def strategy(self) -> SelectionStrategy:
        return self._strategy

    @property
    def retry(self) -> FixedDelayRetry:
        return self._retry

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler
