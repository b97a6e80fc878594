"""Pytest configuration and shared fixtures.

Usage Guide:
- For executor tests: use the `clock`, `limiter`, `pacer` fixtures and
  ScriptedTransport from tests.fakes
- For rate limit tests: header/API fixtures live in tests.fixtures.rate_limit_responses
- For CLI tests: patch github_throttle.cli.github.GitHubClient
"""

from collections.abc import Generator

import pytest

from github_throttle.config import ExecutorConfig, get_settings
from tests.fakes import FakeClock, RecordingPacer, ScriptedRateLimiter


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Collaborator Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    """Virtual clock starting at tests.fakes.EPOCH."""
    return FakeClock()


@pytest.fixture
def limiter() -> ScriptedRateLimiter:
    """Rate limiter that allows everything and records outcomes."""
    return ScriptedRateLimiter()


@pytest.fixture
def pacer() -> RecordingPacer:
    """Pacer with always-due slots."""
    return RecordingPacer()


@pytest.fixture
def executor_config() -> ExecutorConfig:
    """Default executor configuration (independent of the environment)."""
    return ExecutorConfig()
