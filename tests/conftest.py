"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any app import so settings are built
from them rather than from a developer's .env file.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_API_KEY_REQUIRED", "false")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

import pytest  # noqa: E402


class FakeClock:
    """Deterministic millisecond clock used to test time windows."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
