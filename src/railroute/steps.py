"""Step markers and the contingency descriptor.

Steps receive the current state by default. A step that does not want it is
wrapped with ``ignore_input`` at the call site; the pipeline never inspects a
callable's signature to decide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from railroute.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from railroute.result import Result

__all__ = ["Contingency", "IgnoreInput", "ignore_input"]


@dataclass(frozen=True, slots=True)
class IgnoreInput[TOut]:
    """A zero-argument step; the pipeline calls it without the current state."""

    func: Callable[[], TOut]

    def __call__(self) -> TOut:
        return self.func()


def ignore_input[TOut](func: Callable[[], TOut]) -> IgnoreInput[TOut]:
    """Mark *func* as a step that takes no input.

    Example:
        Result.create_from(load, "load").bind(ignore_input(flush_cache))
    """
    if isinstance(func, IgnoreInput):
        return func
    if not callable(func):
        raise ConfigurationError(
            f"ignore_input() expects a callable, got {type(func).__name__}",
            hint="Pass the function itself, e.g. ignore_input(flush_cache).",
        )
    return IgnoreInput(func)


@dataclass(frozen=True)
class Contingency:
    """Fallback routine run against a child pipeline when ``fail_if`` trips.

    The routine receives the freshly created child ``Result`` and is expected
    to chain its own steps onto it. Its return value is ignored.
    """

    routine: Callable[[Result[Any]], Any]
    routine_name: str

    def __post_init__(self) -> None:
        """Validate fields early for clear errors."""
        if not callable(self.routine):
            raise ConfigurationError(
                "Contingency.routine must be callable",
                hint="Pass a function that accepts the child Result.",
            )
        if not isinstance(self.routine_name, str) or not self.routine_name.strip():
            raise ConfigurationError(
                "Contingency.routine_name must be a non-empty string",
                hint="Name the fallback route, e.g. routine_name='restock'.",
            )
