"""request-queue command line interface."""

from request_queue.cli.app import app

__all__ = ["app"]
