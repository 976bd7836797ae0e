"""Queue events — per-instance notifications of insertions and removals.

WHY
───
Callers want to show progress ("3 requests pending") without polling.
Each task queue owns its own emitter; there is no process-wide
dispatcher, so two queues never see each other's events.

ARCHITECTURE
────────────
::

    QueueEvent
      ├── action   ─ added / processed / failure
      ├── task_id  ─ which task
      └── length   ─ queue length right after the change

    QueueEventEmitter(scheduler)
      ├── .subscribe(listener)   ─ returns subscription id
      ├── .unsubscribe(sub_id)
      └── .emit(event)           ─ delivered via scheduler.call_soon

    Delivery is deferred like every other continuation, in emit order.
    A failing listener is logged and does not stop delivery to others.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..core.logging import get_logger
from .scheduler import Scheduler

logger = get_logger(__name__)


class QueueAction(str, Enum):
    """Why the queue length changed."""

    ADDED = "added"
    PROCESSED = "processed"
    FAILURE = "failure"


@dataclass(frozen=True)
class QueueEvent:
    """Queue-updated notification."""

    action: QueueAction
    task_id: int
    length: int

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "task_id": self.task_id, "length": self.length}


QueueListener = Callable[[QueueEvent], Any]


class QueueEventEmitter:
    """Observer registry owned by a single task queue."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._listeners: dict[str, QueueListener] = {}

    def subscribe(self, listener: QueueListener) -> str:
        """Register a listener. Returns a subscription id."""
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._listeners[sub_id] = listener
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a listener. Returns False if the id was unknown."""
        return self._listeners.pop(subscription_id, None) is not None

    def emit(self, event: QueueEvent) -> None:
        """Schedule delivery of ``event`` to the current listeners."""
        if not self._listeners:
            return
        listeners = list(self._listeners.items())
        self._scheduler.call_soon(self._deliver, event, listeners)

    def _deliver(self, event: QueueEvent, listeners: list[tuple[str, QueueListener]]) -> None:
        for sub_id, listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "events.listener_error",
                    subscription_id=sub_id,
                    action=event.action.value,
                    task_id=event.task_id,
                    error=str(e),
                )

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._listeners)
