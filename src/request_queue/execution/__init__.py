"""Execution — the retrying task queue and its selection strategies.

MODULE MAP
──────────
  1. models.py      ─ TaskState, TaskSnapshot, Success/Retry/Failure, Completion
  2. strategies.py  ─ Parallel, Sequential, Priority + registry
  3. retry.py       ─ FixedDelayRetry
  4. scheduler.py   ─ AsyncioScheduler, ManualScheduler (fake clock)
  5. events.py      ─ QueueEvent, QueueEventEmitter
  6. task_queue.py  ─ TaskQueue
"""

from .events import QueueAction, QueueEvent, QueueEventEmitter
from .models import Completion, Failure, Outcome, Retry, Success, TaskInfo, TaskSnapshot, TaskState
from .retry import FixedDelayRetry
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .strategies import (
    DEFAULT_STRATEGY,
    FunctionStrategy,
    ParallelStrategy,
    PriorityStrategy,
    SelectionStrategy,
    SequentialStrategy,
    get_strategy,
    list_strategies,
    register_strategy,
    resolve_strategy,
)
from .task_queue import TaskQueue

__all__ = [
    "QueueAction",
    "QueueEvent",
    "QueueEventEmitter",
    "Completion",
    "Failure",
    "Outcome",
    "Retry",
    "Success",
    "TaskInfo",
    "TaskSnapshot",
    "TaskState",
    "FixedDelayRetry",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "DEFAULT_STRATEGY",
    "FunctionStrategy",
    "ParallelStrategy",
    "PriorityStrategy",
    "SelectionStrategy",
    "SequentialStrategy",
    "get_strategy",
    "list_strategies",
    "register_strategy",
    "resolve_strategy",
    "TaskQueue",
]
