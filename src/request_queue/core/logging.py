"""
Structured logging for request-queue.

Every module logs through structlog with dotted event names
(``task_queue.launch``, ``request_queue.failed``). The identity of the
request being worked on (``task_id``, ``method``, ``url``) is bound
through contextvars by the queues, so it appears on every line logged
while an attempt runs, including lines from the transport's asyncio
task, without each call site repeating it.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None)
            │
            ▼
        structlog processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars      (log_context)
          3. add_log_level
          4. service name
          5. JSONRenderer (or ConsoleRenderer on a tty)
            │
            ▼
        stderr (stdout belongs to CLI output)

        with log_context(task_id=3, method="GET", url="/items"):
            logger.debug("task_queue.launch", attempt=1)

Examples:
    >>> from request_queue.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> get_logger(__name__).debug("task_queue.pass", length=2)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "request-queue"


def _service_processor(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = SERVICE_NAME,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON lines, False for console, None for auto (JSON unless stderr is a tty)
        service: Value of the ``service`` field on every line
    """
    if json_format is None:
        json_format = not sys.stderr.isatty()

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    numeric_level = getattr(logging, level.upper())

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.dev.set_exc_info,
            _service_processor(service),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every log line emitted inside the block.

    ``None`` values are skipped. Asyncio tasks created inside the block
    inherit the binding.
    """
    with structlog.contextvars.bound_contextvars(
        **{key: value for key, value in fields.items() if value is not None}
    ):
        yield


__all__ = [
    "SERVICE_NAME",
    "configure_logging",
    "get_logger",
    "log_context",
]
