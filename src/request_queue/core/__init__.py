"""Core primitives: errors, logging and configuration."""

from .errors import (
    ClientFailure,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    MaxRetriesExceeded,
    OutcomeAlreadySettled,
    RequestQueueError,
    StrategyError,
    TransientFailure,
    UnknownError,
    UnsupportedMethod,
)
from .logging import configure_logging, get_logger, log_context

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
    "configure_logging",
    "get_logger",
    "log_context",
]
