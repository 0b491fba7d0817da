"""Configuration: validated, immutable settings with a guarded ambient scope.

Resolution follows a single precedence: defaults < environment < overrides.
Environment values are read only from ``RAILROUTE_*`` variables and are
coerced by the ``Settings`` schema, so the schema stays the single source of
truth for field types, defaults and validation rules.
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from functools import cache
import logging
import os
from typing import TYPE_CHECKING, Any

import dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from railroute.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping

log = logging.getLogger(__name__)

ENV_PREFIX = "RAILROUTE_"

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Runtime knobs shared by every pipeline created under them.

    Settings are frozen: a pipeline captures the instance active at its
    creation and hands the same instance to any contingency it spawns.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    #: Keep the formatted traceback on every ``ExceptionalError``.
    capture_tracebacks: bool = Field(default=False)
    #: Upper bound for messages derived from captured exceptions.
    max_message_length: int = Field(default=500, ge=16)
    #: Level used when a step fault is captured as a reason.
    capture_log_level: int = Field(default=logging.DEBUG, ge=0)
    #: Warn when a synchronous step hands back an awaitable.
    warn_on_awaitable: bool = Field(default=True)

    @field_validator("capture_log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept level names (``"info"``, ``"WARNING"``) as well as numbers."""
        if isinstance(v, str):
            name = v.strip().upper()
            if name.isdigit():
                return int(name)
            level = logging.getLevelName(name)
            if not isinstance(level, int):
                raise ValueError(f"unknown log level {v!r}")
            return level
        return v


# --- Ambient scope (guarded) ---

_AMBIENT: contextvars.ContextVar[Settings | None] = contextvars.ContextVar(
    "railroute_settings", default=None
)

_DOTENV_LOADED: bool = False


def _try_load_dotenv() -> None:
    """Load a project ``.env`` once so ``RAILROUTE_*`` entries become visible."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    dotenv.load_dotenv()


def load_env() -> dict[str, Any]:
    """Return ``RAILROUTE_*`` environment values keyed by settings field name.

    Unknown suffixes are skipped with a debug log rather than rejected, so an
    unrelated ``RAILROUTE_`` variable never breaks resolution.
    """
    known = set(Settings.model_fields)
    found: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name not in known:
            log.debug("Ignoring unknown setting variable %s", key)
            continue
        found[field_name] = value
    return found


def resolve_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Resolve settings from defaults, the environment and explicit overrides.

    Raises:
        ConfigurationError: If the merged values fail schema validation.
    """
    _try_load_dotenv()
    return _validate({**load_env(), **(overrides or {})})


def _validate(merged: Mapping[str, Any]) -> Settings:
    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or "settings"
        msg = err.get("msg") or "invalid value"
        # Remove "Value error, " prefix if present (Pydantic standard wrapper)
        if msg.startswith("Value error, "):
            msg = msg[13:]
        raise ConfigurationError(
            f"Invalid setting {field}: {msg}",
            hint=f"Check {ENV_PREFIX}{field.upper()} or the override passed in code.",
        ) from e


@cache
def unscoped_settings() -> Settings:
    """Resolve the settings used outside any scope, once per process.

    Invalid environment values are reported here with a warning and the
    schema defaults are used, so creating a pipeline never fails on
    configuration. Call ``resolve_settings()`` to get the error itself, and
    ``unscoped_settings.cache_clear()`` after changing the environment.
    """
    try:
        return resolve_settings()
    except ConfigurationError as e:
        log.warning("Ignoring invalid railroute settings, using defaults: %s", e)
        return Settings()


def current_settings() -> Settings:
    """Return the ambient settings, or the cached unscoped ones."""
    scoped = _AMBIENT.get()
    if scoped is not None:
        return scoped
    return unscoped_settings()


@contextmanager
def settings_scope(
    settings_or_overrides: Mapping[str, Any] | Settings | None = None,
    **overrides: object,
) -> Generator[Settings]:
    """Bind settings for pipelines created inside the ``with`` block.

    Thread-safe and async-safe: the binding lives in a context variable.

    Example:
        with settings_scope(capture_tracebacks=True):
            result = Result.create_from(load_order, "load-order")
    """
    if isinstance(settings_or_overrides, Settings):
        settings = (
            _validate({**settings_or_overrides.model_dump(), **overrides})
            if overrides
            else settings_or_overrides
        )
    else:
        settings = resolve_settings({**(settings_or_overrides or {}), **overrides})

    token = _AMBIENT.set(settings)
    try:
        yield settings
    finally:
        _AMBIENT.reset(token)
