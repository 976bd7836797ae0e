"""
request-queue - retrying, strategy-scheduled HTTP requests for asyncio.

Usage::

    from request_queue import HttpxTransport, RequestQueue

    async with HttpxTransport(base_url="https://api.example.com") as transport:
        queue = RequestQueue(transport)
        body = await queue.get("/items")
"""

__version__ = "0.1.0"

from request_queue.core.errors import (  # noqa: E402
    ClientFailure,
    MaxRetriesExceeded,
    RequestQueueError,
    TransientFailure,
    UnsupportedMethod,
)
from request_queue.execution import (  # noqa: E402
    ParallelStrategy,
    PriorityStrategy,
    SequentialStrategy,
    TaskQueue,
)
from request_queue.http import HttpxTransport, RequestQueue, TransportRequest  # noqa: E402

__all__ = [
    "__version__",
    "RequestQueueError",
    "TransientFailure",
    "ClientFailure",
    "UnsupportedMethod",
    "MaxRetriesExceeded",
    "ParallelStrategy",
    "PriorityStrategy",
    "SequentialStrategy",
    "TaskQueue",
    "HttpxTransport",
    "RequestQueue",
    "TransportRequest",
]
