"""Shared test fixtures for specinvoke.

Provides the petstore fixture document, a recording request executor and
a warning collector, and resets the global output state between tests.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from specinvoke.models import PreparedRequest
from specinvoke.output import OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a plain, quiet OutputManager."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    return output


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_path() -> Path:
    return FIXTURES_DIR / "petstore.json"


@pytest.fixture
def petstore(petstore_path: Path) -> dict[str, Any]:
    """Load the petstore fixture document as a plain dict."""
    with open(petstore_path) as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class RecordingExecutor:
    """Request executor that records requests and answers ``200 {}``."""

    def __init__(self) -> None:
        self.requests: list[PreparedRequest] = []

    async def __call__(self, request: PreparedRequest) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={}, request=httpx.Request(request.method, request.url))

    @property
    def last(self) -> PreparedRequest:
        return self.requests[-1]


class WarningCollector:
    """Logger capability that keeps every warning."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def warning(self, message: str) -> None:
        self.messages.append(message)

    def __contains__(self, fragment: str) -> bool:
        return any(fragment in message for message in self.messages)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def warnings_log() -> WarningCollector:
    return WarningCollector()
