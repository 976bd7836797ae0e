"""Selection strategies — which queued tasks may start this pass.

WHY
───
Admission control is the only policy decision the task queue does not
make itself. On every scheduling pass the queue hands the active
strategy an ordered snapshot of ``(payload, running)`` pairs and gets
back one boolean per task. Strategies are pure: the same snapshot
always yields the same decisions, and a pass can be recomputed from
scratch at any time.

ARCHITECTURE
────────────
::

    SelectionStrategy (ABC)
      ├── ParallelStrategy     "all"             every idle task
      ├── SequentialStrategy   "sequential"      head of the queue only
      ├── PriorityStrategy     "sequentialPost"  idle reads + earliest write
      └── FunctionStrategy                       wraps a plain callable

    get_strategy(name)            ─ name → instance
    register_strategy(name, fn)   ─ add a named factory
    resolve_strategy(value)       ─ instance | callable | name → instance

Example::

    strategy = get_strategy("sequentialPost")
    strategy.select([
        TaskSnapshot(payload=RequestPayload("POST", "/a"), running=True),
        TaskSnapshot(payload=RequestPayload("GET", "/b"), running=False),
        TaskSnapshot(payload=RequestPayload("POST", "/c"), running=False),
    ])
    # [False, True, False]: /c waits for /a
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ..core.errors import ConfigError
from .models import TaskSnapshot

SelectFn = Callable[[Sequence[TaskSnapshot]], Sequence[bool]]


class SelectionStrategy(ABC):
    """Abstract base for selection strategies."""

    name: str = "custom"

    @abstractmethod
    def select(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        """Decide which tasks to start.

        Args:
            tasks: Snapshot of the queue, in insertion order

        Returns:
            One boolean per task, aligned with ``tasks``
        """
        ...

    def __call__(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        return self.select(tasks)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ParallelStrategy(SelectionStrategy):
    """Start every task that is not already running."""

    name = "all"

    def select(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        return [not task.running for task in tasks]


class SequentialStrategy(SelectionStrategy):
    """Strict FIFO: only the head of the queue, one task system-wide."""

    name = "sequential"

    def select(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        selected = [False] * len(tasks)
        if tasks and not tasks[0].running:
            selected[0] = True
        return selected


def payload_method(payload: Any) -> str | None:
    """Read the HTTP method from a payload object or mapping."""
    if isinstance(payload, Mapping):
        method = payload.get("method")
    else:
        method = getattr(payload, "method", None)
    return method.upper() if isinstance(method, str) else None


class PriorityStrategy(SelectionStrategy):
    """Reads run freely; writes run one at a time in submission order.

    Every idle non-write task is selected. Among write tasks only the
    earliest one is considered, and it is selected only when idle, so a
    later write never starts while an earlier one is queued, running or
    waiting for a retry.
    """

    name = "sequentialPost"

    def __init__(self, write_methods: Iterable[str] = ("POST",)) -> None:
        self.write_methods = frozenset(m.upper() for m in write_methods)

    def select(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        selected = [False] * len(tasks)
        first_write_seen = False
        for index, task in enumerate(tasks):
            if payload_method(task.payload) in self.write_methods:
                if not first_write_seen:
                    first_write_seen = True
                    selected[index] = not task.running
            else:
                selected[index] = not task.running
        return selected


class FunctionStrategy(SelectionStrategy):
    """Adapt a plain ``select`` callable to the strategy interface."""

    def __init__(self, fn: SelectFn, name: str | None = None) -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "custom")

    def select(self, tasks: Sequence[TaskSnapshot]) -> list[bool]:
        return list(self._fn(tasks))


# ── Registry ─────────────────────────────────────────────────────────────

_STRATEGIES: dict[str, Callable[[], SelectionStrategy]] = {
    "all": ParallelStrategy,
    "parallel": ParallelStrategy,
    "sequential": SequentialStrategy,
    "sequentialPost": PriorityStrategy,
    "priority": PriorityStrategy,
}

DEFAULT_STRATEGY = "sequentialPost"


def register_strategy(name: str, factory: Callable[[], SelectionStrategy]) -> None:
    """Register a named strategy factory.

    Raises:
        ConfigError: If the name is already taken
    """
    if name in _STRATEGIES:
        raise ConfigError(f"Strategy already registered: {name}")
    _STRATEGIES[name] = factory


def unregister_strategy(name: str) -> None:
    _STRATEGIES.pop(name, None)


def list_strategies() -> list[str]:
    return sorted(_STRATEGIES)


def get_strategy(name: str) -> SelectionStrategy:
    """Build a strategy by name.

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        factory = _STRATEGIES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown strategy: {name!r}",
        ).with_context(available=list_strategies()) from None
    return factory()


def resolve_strategy(value: SelectionStrategy | SelectFn | str | None) -> SelectionStrategy:
    """Turn a strategy instance, callable or name into a strategy."""
    if value is None:
        return get_strategy(DEFAULT_STRATEGY)
    if isinstance(value, SelectionStrategy):
        return value
    if isinstance(value, str):
        return get_strategy(value)
    if callable(value):
        return FunctionStrategy(value)
    raise ConfigError(f"Unknown strategy: {value!r}")


__all__ = [
    "SelectFn",
    "SelectionStrategy",
    "ParallelStrategy",
    "SequentialStrategy",
    "PriorityStrategy",
    "FunctionStrategy",
    "DEFAULT_STRATEGY",
    "payload_method",
    "register_strategy",
    "unregister_strategy",
    "list_strategies",
    "get_strategy",
    "resolve_strategy",
]
