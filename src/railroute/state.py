"""Single-slot state cache.

A pipeline holds either nothing or exactly one retained value. Modelling the
slot as ``Present | Empty`` keeps "no value yet" distinct from a retained
``None``.
"""

from __future__ import annotations

import dataclasses

from railroute.errors import MissingStateError


@dataclasses.dataclass(frozen=True, slots=True)
class Present[T]:
    """A retained value."""

    value: T


@dataclasses.dataclass(frozen=True, slots=True)
class Empty:
    """No value has been retained yet."""


EMPTY = Empty()

type StateCache[T] = Present[T] | Empty


def unwrap[T](cache: StateCache[T], routine_name: str | None = None) -> T:
    """Return the retained value or raise ``MissingStateError``."""
    match cache:
        case Present(value=value):
            return value
        case _:
            raise MissingStateError(routine_name)
