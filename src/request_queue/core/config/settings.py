"""
Centralized settings for request-queue.

One validated, cached settings object supplies every default a
:class:`~request_queue.http.queue.RequestQueue` does not receive
explicitly. Values come from ``REQUEST_QUEUE_*`` environment variables
or a ``.env`` file.

Tags:
    request-queue, configuration, settings, pydantic, caching, validation
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueSettings(BaseSettings):
    """Request-queue configuration.

    All fields can be set via ``REQUEST_QUEUE_*`` environment variables
    (e.g. ``REQUEST_QUEUE_MAX_RETRIES=10``).
    """

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_QUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Scheduling ───────────────────────────────────────────────
    strategy: str = Field(
        default="sequentialPost",
        description="Selection strategy name (all, sequential, sequentialPost)",
    )
    retry_timeout: float = Field(
        default=1.0, ge=0.0, description="Fixed delay in seconds before a retry"
    )
    max_retries: int = Field(
        default=300, ge=1, description="Attempts per task before MaxRetriesExceeded"
    )

    # ── Transport ────────────────────────────────────────────────
    base_url: str = Field(default="")
    transport_timeout: float = Field(default=10.0, gt=0.0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, QueueSettings] = {}


def get_settings(*, _force_reload: bool = False) -> QueueSettings:
    """Load, validate, and cache a :class:`QueueSettings` instance.

    Parameters
    ----------
    _force_reload:
        Bypass cache and re-read the environment.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = QueueSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop the cached settings (used by tests that patch the environment)."""
    _settings_cache.clear()
