"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and small step doubles.
Environment fixtures are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from railroute.config import unscoped_settings

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class StepRecorder:
    """Step double that records every call and returns a scripted value.

    Use to assert whether the pipeline invoked a step at all, and with what.
    """

    returns: Any = None
    raises: Exception | None = None
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> Any:
        self.calls.append(args)
        if self.raises is not None:
            raise self.raises
        return self.returns

    async def async_call(self, *args: Any) -> Any:
        return self(*args)

    @property
    def called(self) -> bool:
        return bool(self.calls)


@pytest.fixture
def recorder() -> StepRecorder:
    """A fresh ``StepRecorder`` returning ``None``."""
    return StepRecorder()


@pytest.fixture
def make_recorder():
    """Factory for ``StepRecorder`` doubles with scripted outcomes."""

    def _make(returns: Any = None, raises: Exception | None = None) -> StepRecorder:
        return StepRecorder(returns=returns, raises=raises)

    return _make


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_railroute_env(request, monkeypatch):
    """Clear RAILROUTE_* variables so settings resolve to schema defaults.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("RAILROUTE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_unscoped_settings():
    """Drop cached unscoped settings so each test resolves its own environment."""
    unscoped_settings.cache_clear()
    yield
    unscoped_settings.cache_clear()


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)
