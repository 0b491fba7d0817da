"""Configuration boundary tests: resolution precedence, validation and scoping."""

from __future__ import annotations

import logging

from pydantic import ValidationError
import pytest

from railroute import (
    ConfigurationError,
    Result,
    Settings,
    current_settings,
    resolve_settings,
    settings_scope,
)
from railroute import config as config_module
from railroute.config import unscoped_settings

pytestmark = pytest.mark.unit


def test_defaults_without_environment() -> None:
    settings = resolve_settings()

    assert settings == Settings()
    assert settings.capture_tracebacks is False
    assert settings.max_message_length == 500
    assert settings.capture_log_level == logging.DEBUG
    assert settings.warn_on_awaitable is True


def test_environment_values_are_coerced(monkeypatch) -> None:
    monkeypatch.setenv("RAILROUTE_CAPTURE_TRACEBACKS", "true")
    monkeypatch.setenv("RAILROUTE_MAX_MESSAGE_LENGTH", "64")
    monkeypatch.setenv("RAILROUTE_CAPTURE_LOG_LEVEL", "info")

    settings = resolve_settings()

    assert settings.capture_tracebacks is True
    assert settings.max_message_length == 64
    assert settings.capture_log_level == logging.INFO


def test_overrides_win_over_environment(monkeypatch) -> None:
    monkeypatch.setenv("RAILROUTE_MAX_MESSAGE_LENGTH", "64")

    settings = resolve_settings({"max_message_length": 128})

    assert settings.max_message_length == 128


def test_unknown_environment_variables_are_ignored(monkeypatch) -> None:
    monkeypatch.setenv("RAILROUTE_NOT_A_SETTING", "1")

    assert resolve_settings() == Settings()


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"max_message_length": 3}, "max_message_length"),
        ({"capture_log_level": "loud"}, "capture_log_level"),
        ({"retries": 3}, "retries"),
    ],
)
def test_invalid_values_raise_configuration_error(
    overrides: dict[str, object], field: str
) -> None:
    with pytest.raises(ConfigurationError) as exc:
        resolve_settings(overrides)

    assert field in str(exc.value)
    assert exc.value.hint is not None
    assert isinstance(exc.value.__cause__, ValidationError)


def test_numeric_log_level_strings(monkeypatch) -> None:
    monkeypatch.setenv("RAILROUTE_CAPTURE_LOG_LEVEL", "30")

    assert resolve_settings().capture_log_level == logging.WARNING


def test_settings_are_frozen() -> None:
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.capture_tracebacks = True  # type: ignore[misc]


def test_dotenv_is_loaded_once(monkeypatch) -> None:
    calls: list[int] = []
    monkeypatch.setattr(config_module, "_DOTENV_LOADED", False)
    monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: calls.append(1))

    resolve_settings()
    resolve_settings()

    assert calls == [1]


def test_scope_binds_settings_for_new_pipelines() -> None:
    with settings_scope(max_message_length=32) as scoped:
        assert current_settings() is scoped
        inside = Result.create_from(lambda: 1, "inside")

    outside = Result.create_from(lambda: 1, "outside")

    assert inside.settings is scoped
    assert inside.settings.max_message_length == 32
    assert outside.settings.max_message_length == 500


def test_scope_accepts_settings_with_overrides() -> None:
    base = Settings(capture_tracebacks=True)

    with settings_scope(base) as same:
        assert same is base
    with settings_scope(base, max_message_length=64) as derived:
        assert derived.capture_tracebacks is True
        assert derived.max_message_length == 64


def test_scopes_nest_and_restore() -> None:
    with settings_scope(max_message_length=64):
        with settings_scope(max_message_length=32):
            assert current_settings().max_message_length == 32
        assert current_settings().max_message_length == 64
    assert current_settings().max_message_length == 500


def test_explicit_settings_beat_scope() -> None:
    explicit = Settings(max_message_length=16)
    with settings_scope(max_message_length=64):
        result = Result.create_from(lambda: 1, "explicit", settings=explicit)

    assert result.settings is explicit


def test_invalid_environment_does_not_break_entry_points(monkeypatch, caplog) -> None:
    monkeypatch.setenv("RAILROUTE_MAX_MESSAGE_LENGTH", "lots")

    with caplog.at_level(logging.WARNING, logger="railroute"):
        result = Result.create_from(lambda: 1, "entry")

    assert result.is_success
    assert result.current_state == 1
    assert result.settings == Settings()
    assert "max_message_length" in caplog.text
    # The explicit resolution point still reports the error.
    with pytest.raises(ConfigurationError):
        resolve_settings()


def test_unscoped_settings_are_resolved_once(monkeypatch) -> None:
    monkeypatch.setenv("RAILROUTE_MAX_MESSAGE_LENGTH", "64")
    first = Result.create_from(lambda: 1, "first")

    monkeypatch.setenv("RAILROUTE_MAX_MESSAGE_LENGTH", "128")
    second = Result.create_from(lambda: 1, "second")

    assert first.settings is second.settings
    assert second.settings.max_message_length == 64

    unscoped_settings.cache_clear()
    assert current_settings().max_message_length == 128


def test_captured_faults_use_configured_log_level(caplog) -> None:
    with (
        settings_scope(capture_log_level="warning"),
        caplog.at_level(logging.WARNING, logger="railroute"),
    ):
        Result.create_from(lambda: 1 / 0, "divide")

    assert "Routine 'divide' captured exception: ZeroDivisionError" in caplog.text
