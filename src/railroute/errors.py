"""Exception hierarchy for railroute.

These are the only conditions raised to callers. Faults from step code are
never raised; they are recorded as reasons on the pipeline instead.
"""

from __future__ import annotations


class RailrouteError(Exception):
    """Base exception for all railroute errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class MissingStateError(RailrouteError):
    """The current state was read before any step produced one."""

    def __init__(self, routine_name: str | None = None) -> None:
        where = f" in routine {routine_name!r}" if routine_name else ""
        super().__init__(
            f"No state has been retained{where}",
            hint=(
                "To inject state into a step, first chain a step that returns "
                "a value for retention."
            ),
        )
        self.routine_name = routine_name


class ConfigurationError(RailrouteError):
    """Settings or call arguments failed validation."""


class InternalError(RailrouteError):
    """A railroute internal error (bug) or invariant violation."""
