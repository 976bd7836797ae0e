"""Configuration for request-queue.

Usage::

    from request_queue.core.config import get_settings

    settings = get_settings()
    print(settings.max_retries)
"""

from .settings import QueueSettings, clear_settings_cache, get_settings

__all__ = ["QueueSettings", "get_settings", "clear_settings_cache"]
