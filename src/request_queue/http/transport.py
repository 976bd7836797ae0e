"""Transport — the network call behind every queued request.

Manifesto:
The queue decides *when* a request runs; the transport only performs
it and says how it went. The classification that drives retries is
explicit and typed: a transport returns the response body, raises
:class:`TransientFailure` for conditions worth retrying, or raises
:class:`ClientFailure` for conditions that must fail immediately.

ARCHITECTURE
────────────
::

    Transport (Protocol)
      └── async send(TransportRequest) -> body

    HttpxTransport(httpx.AsyncClient)
      2xx              → parsed JSON / text / None
      5xx              → TransientFailure(status_code)
      TransportError   → TransientFailure   (connect, read, timeout)
      anything else    → ClientFailure(status_code)

Example::

    async with HttpxTransport(base_url="https://api.example.com") as transport:
        queue = RequestQueue(transport)
        items = await queue.get("/items")

Tags:
    request-queue, transport, httpx, http, classification
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from ..core.errors import ClientFailure, TransientFailure
from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransportRequest:
    """Normalized request handed to a transport.

    ``options`` carries per-request extras understood by the transport
    (``headers``, ``params``, ``timeout``).
    """

    method: str
    url: str
    data: Any = None
    options: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """Performs one network call.

    Must return the response body on success and raise
    :class:`TransientFailure` or :class:`ClientFailure` otherwise.
    Any other exception is treated as a terminal failure.
    """

    async def send(self, request: TransportRequest) -> Any: ...


class HttpxTransport:
    """Transport backed by :class:`httpx.AsyncClient`.

    Parameters
    ----------
    client : httpx.AsyncClient | None
        Client to use. When omitted one is created and closed by
        :meth:`aclose`.
    base_url : str
        Prefix for relative request URLs (only for a created client).
    timeout : float
        Default timeout in seconds (only for a created client).
    headers : dict | None
        Default headers (only for a created client).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = "",
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
        )

    async def send(self, request: TransportRequest) -> Any:
        kwargs: dict[str, Any] = {}
        for key in ("headers", "params", "timeout"):
            if key in request.options:
                kwargs[key] = request.options[key]
        if request.data is not None:
            kwargs["json"] = request.data

        try:
            response = await self._client.request(request.method, request.url, **kwargs)
        except httpx.TransportError as e:
            raise TransientFailure(
                f"Request error {request.method} {request.url}: {e}",
                cause=e,
            ).with_context(method=request.method, url=request.url) from e

        logger.debug(
            "transport.response",
            method=request.method,
            url=str(response.request.url),
            status=response.status_code,
        )

        if response.status_code >= 500:
            raise TransientFailure(
                f"Server error {response.status_code} for {request.method} {request.url}",
                status_code=response.status_code,
            ).with_context(method=request.method, url=request.url)

        if not response.is_success:
            raise ClientFailure(
                f"Request failed {response.status_code} for {request.method} {request.url}",
                status_code=response.status_code,
            ).with_context(method=request.method, url=request.url, body=response.text[:500])

        return self._parse_body(response)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            return response.json()
        return response.text

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
