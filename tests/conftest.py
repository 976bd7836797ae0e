"""
Shared pytest fixtures and configuration for request-queue tests.

This module provides:
- Settings isolation (no REQUEST_QUEUE_* leakage from the environment)
- A deterministic fake-clock scheduler
- Scripted transports and runners

Usage:
    Fixtures are auto-discovered by pytest. Use them as function
    arguments:

    def test_something(scheduler, manual_runner):
        ...
"""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure request_queue and tests._support are importable
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from request_queue.core.config import clear_settings_cache  # noqa: E402
from request_queue.execution.scheduler import ManualScheduler  # noqa: E402
from tests._support.fakes import FakeTransport, ManualRunner  # noqa: E402


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path) or "cli" in test_path.parts:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Drop cached settings and any REQUEST_QUEUE_* variables around each test."""
    for key in list(os.environ):
        if key.startswith("REQUEST_QUEUE_"):
            monkeypatch.delenv(key)
    # keep a stray .env in the working tree from leaking in
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Scheduling Fixtures
# =============================================================================


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Fake-clock scheduler; advance it explicitly."""
    return ManualScheduler()


@pytest.fixture
def manual_runner() -> ManualRunner:
    return ManualRunner()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
