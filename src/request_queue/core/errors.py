"""
Structured error types for request-queue.

Every failure a caller can observe on a pending request is one of the
types below. Each error carries a category, an explicit ``retryable``
flag, structured context and an optional chained cause, so the task
queue can decide between "retry locally" and "reject the caller"
without inspecting messages or loose truthiness.

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                   RequestQueueError                        │
        │  (category, retryable, context, cause)                     │
        ├───────────────────────────────────────────────────────────┤
        │  TransientFailure     ClientFailure      UnsupportedMethod │
        │  (NETWORK, retry)     (CLIENT)           (CLIENT)          │
        │                                                            │
        │  MaxRetriesExceeded   UnknownError       StrategyError     │
        │  (RETRY)              (UNKNOWN)          (INTERNAL)        │
        │                                                            │
        │  ConfigError          OutcomeAlreadySettled                │
        │  (CONFIG)             (INTERNAL)                           │
        └───────────────────────────────────────────────────────────┘

Classification:
    - **TransientFailure:** server-side (5xx) or network-level failure.
      Retryable by default. The request adapter retries any
      ``RequestQueueError`` whose ``retryable`` flag is set, up to
      ``max_retries`` attempts with a fixed delay.
    - **ClientFailure:** the server understood and refused the request
      (4xx). Surfaced immediately with the status code.
    - **UnsupportedMethod:** raised by the request adapter before the
      transport is contacted.
    - **MaxRetriesExceeded:** raised by the task queue itself once the
      attempt ceiling is reached.

Examples:
    >>> error = TransientFailure("upstream returned 503", status_code=503)
    >>> error.retryable
    True
    >>> error.context.http_status
    503

    >>> error = ClientFailure("not found", status_code=404)
    >>> error.with_context(url="/items/7").to_dict()["context"]
    {'url': '/items/7', 'http_status': 404}

Usage:
    from request_queue.core.errors import ClientFailure, TransientFailure

    if response.status_code >= 500:
        raise TransientFailure("server error", status_code=response.status_code)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    NETWORK = "NETWORK"  # Connection, timeout, 5xx
    CLIENT = "CLIENT"  # 4xx, unsupported method
    RETRY = "RETRY"  # Attempt ceiling reached
    CONFIG = "CONFIG"  # Invalid settings or unknown strategy
    INTERNAL = "INTERNAL"  # Bugs, protocol misuse
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set end up in :meth:`to_dict`, so log lines
    stay short. Anything without a dedicated field goes to ``metadata``.

    Attributes:
        task_id: Queue task identifier
        method: HTTP method of the request
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        attempts: Number of attempts made so far
        metadata: Additional key-value pairs
    """

    task_id: int | None = None
    method: str | None = None
    url: str | None = None
    http_status: int | None = None
    attempts: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["task_id", "method", "url", "http_status", "attempts"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RequestQueueError(Exception):
    """
    Base exception for all request-queue errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    callers rarely pass them explicitly.

    Examples:
        >>> error = RequestQueueError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RequestQueueError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ClientFailure("refused", status_code=403).with_context(
                url="/admin", method="DELETE"
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSPORT OUTCOMES
# =============================================================================


class TransientFailure(RequestQueueError):
    """
    Server-side or network-level failure that may succeed on retry.

    Transports raise this for 5xx responses, connection errors and
    timeouts. The request adapter turns it into a retry of the task.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if status_code is not None:
            self.context.http_status = status_code

    @property
    def status_code(self) -> int | None:
        return self.context.http_status


class ClientFailure(RequestQueueError):
    """Non-retryable, application-level refusal (typically a 4xx response)."""

    default_category = ErrorCategory.CLIENT

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if status_code is not None:
            self.context.http_status = status_code

    @property
    def status_code(self) -> int | None:
        return self.context.http_status


class UnsupportedMethod(RequestQueueError):
    """The request adapter has no mapping for this HTTP method."""

    default_category = ErrorCategory.CLIENT

    def __init__(self, method: str, **kwargs: Any):
        super().__init__(f"Unknown request method: {method}", **kwargs)
        self.method = method
        self.context.method = method


# =============================================================================
# QUEUE ERRORS
# =============================================================================


class MaxRetriesExceeded(RequestQueueError):
    """A task reported transient failure on every one of its attempts."""

    default_category = ErrorCategory.RETRY

    def __init__(self, attempts: int, **kwargs: Any):
        super().__init__(f"Max retries reached after {attempts} attempts", **kwargs)
        self.attempts = attempts
        self.context.attempts = attempts


class UnknownError(RequestQueueError):
    """A runner reported failure without saying why."""

    default_category = ErrorCategory.UNKNOWN

    def __init__(self, message: str = "Unknown error", **kwargs: Any):
        super().__init__(message, **kwargs)


class StrategyError(RequestQueueError):
    """A selection strategy raised or returned a malformed decision vector."""


class OutcomeAlreadySettled(RequestQueueError):
    """A runner tried to report a second outcome for the same attempt."""


class ConfigError(RequestQueueError):
    """Invalid configuration (unknown strategy name, bad option values)."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RequestQueueError",
    "TransientFailure",
    "ClientFailure",
    "UnsupportedMethod",
    "MaxRetriesExceeded",
    "UnknownError",
    "StrategyError",
    "OutcomeAlreadySettled",
    "ConfigError",
]
