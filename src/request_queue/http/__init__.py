"""HTTP mapping: RequestQueue and the httpx transport."""

from .queue import SUPPORTED_METHODS, QueuedRequest, QueueStatus, RequestPayload, RequestQueue, classify_exception
from .transport import HttpxTransport, Transport, TransportRequest

__all__ = [
    "SUPPORTED_METHODS",
    "QueuedRequest",
    "QueueStatus",
    "RequestPayload",
    "RequestQueue",
    "classify_exception",
    "HttpxTransport",
    "Transport",
    "TransportRequest",
]
