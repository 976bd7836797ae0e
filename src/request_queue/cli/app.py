"""
Root Typer application for the request-queue CLI.

    request-queue fetch URL... [--method GET] [--data JSON] [--strategy NAME]
    request-queue config
    request-queue strategies

Results go to stdout as one JSON object per line; queue length changes
and logs go to stderr.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console

from request_queue.core.config import QueueSettings, get_settings
from request_queue.core.errors import ConfigError
from request_queue.core.logging import configure_logging
from request_queue.execution.strategies import list_strategies, resolve_strategy
from request_queue.http.queue import RequestQueue
from request_queue.http.transport import HttpxTransport

app = typer.Typer(
    name="request-queue",
    help="request-queue — retrying, strategy-scheduled HTTP requests.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        from request_queue import __version__

        typer.echo(f"request-queue {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """request-queue CLI — send requests through a retrying queue."""


def build_transport(settings: QueueSettings, base_url: str | None, timeout: float | None) -> HttpxTransport:
    """Create the transport used by ``fetch``."""
    return HttpxTransport(
        base_url=base_url if base_url is not None else settings.base_url,
        timeout=timeout if timeout is not None else settings.transport_timeout,
    )


def _result_row(method: str, url: str, outcome: Any) -> dict[str, Any]:
    if isinstance(outcome, BaseException):
        row = {"method": method, "url": url, "ok": False, "error": str(outcome), "error_type": type(outcome).__name__}
        status_code = getattr(outcome, "status_code", None)
        if status_code is not None:
            row["status_code"] = status_code
        return row
    return {"method": method, "url": url, "ok": True, "value": outcome}


async def _fetch_all(
    transport: HttpxTransport,
    method: str,
    urls: list[str],
    data: Any,
    queue_options: dict[str, Any],
) -> list[dict[str, Any]]:
    async with transport:
        queue = RequestQueue(transport, **queue_options)
        queue.on_queue_length_change(lambda n: err_console.print(f"[dim]queue length {n}[/dim]"))
        futures = [queue.request(method, url, data) for url in urls]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
    return [_result_row(method.upper(), url, outcome) for url, outcome in zip(urls, outcomes)]


@app.command("fetch")
def fetch(
    urls: list[str] = typer.Argument(..., help="URLs to request, in submission order."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method (GET, POST, DELETE)."),
    data: str | None = typer.Option(None, "--data", "-d", help="JSON request body."),  # noqa: UP007
    strategy: str | None = typer.Option(None, "--strategy", "-s", help="Selection strategy name."),  # noqa: UP007
    max_retries: int | None = typer.Option(None, "--max-retries", min=1, help="Attempts per request."),  # noqa: UP007
    retry_timeout: float | None = typer.Option(None, "--retry-timeout", min=0.0, help="Seconds between attempts."),  # noqa: UP007
    base_url: str | None = typer.Option(None, "--base-url", help="Prefix for relative URLs."),  # noqa: UP007
    timeout: float | None = typer.Option(None, "--timeout", help="Per-request timeout in seconds."),  # noqa: UP007
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Send every URL through one queue and print one JSON line per result."""
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.json_logs,
    )

    if timeout is not None and timeout <= 0:
        raise typer.BadParameter("must be greater than 0", param_hint="--timeout")

    body: Any = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"--data is not valid JSON: {e}") from e

    try:
        selection = resolve_strategy(strategy or settings.strategy)
    except ConfigError as e:
        raise typer.BadParameter(str(e), param_hint="--strategy") from e

    queue_options: dict[str, Any] = {
        "strategy": selection,
        "max_retries": max_retries,
        "retry_timeout": retry_timeout,
        "settings": settings,
    }
    transport = build_transport(settings, base_url, timeout)
    rows = asyncio.run(_fetch_all(transport, method, urls, body, queue_options))

    for row in rows:
        typer.echo(json.dumps(row, default=str))

    if not all(row["ok"] for row in rows):
        raise typer.Exit(code=1)


@app.command("config")
def show_config() -> None:
    """Show the resolved settings as JSON."""
    console.print_json(get_settings().model_dump_json())


@app.command("strategies")
def show_strategies() -> None:
    """List registered selection strategy names."""
    for name in list_strategies():
        typer.echo(name)


if __name__ == "__main__":
    app()
