"""Reasons: the commentary a pipeline accumulates while it runs.

Every reason carries an explicit ``kind`` tag. Failure is derived from the
tag alone, so a reason counts as an error because it says so, not because of
where it sits in the class tree.

Domain errors subclass ``ErrorReason``::

    @dataclass(frozen=True, slots=True)
    class OutOfStock(ErrorReason):
        sku: str = ""
"""

from __future__ import annotations

import dataclasses
from enum import Enum
import traceback
from typing import Any, ClassVar

from railroute.config import Settings, current_settings

__all__ = [
    "ErrorKind",
    "ErrorReason",
    "ExceptionalError",
    "GenericError",
    "InfoReason",
    "PromiseRejection",
    "Reason",
    "ReasonKind",
    "describe",
    "is_error",
]


class ReasonKind(str, Enum):
    """Top-level discriminant for reasons."""

    INFO = "info"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Discriminant among error reasons."""

    DOMAIN = "domain"
    EXCEPTIONAL = "exceptional"
    REJECTION = "rejection"


@dataclasses.dataclass(frozen=True, slots=True)
class Reason:
    """Base unit of pipeline commentary."""

    kind: ClassVar[ReasonKind]

    message: str


@dataclasses.dataclass(frozen=True, slots=True)
class InfoReason(Reason):
    """Informational note; never affects success."""

    kind: ClassVar[ReasonKind] = ReasonKind.INFO


@dataclasses.dataclass(frozen=True, slots=True)
class ErrorReason(Reason):
    """A reason that marks its pipeline as failed."""

    kind: ClassVar[ReasonKind] = ReasonKind.ERROR
    error_kind: ClassVar[ErrorKind] = ErrorKind.DOMAIN


@dataclasses.dataclass(frozen=True, slots=True)
class GenericError(ErrorReason):
    """A caller-supplied domain failure with nothing but a message."""


@dataclasses.dataclass(frozen=True, slots=True)
class ExceptionalError(ErrorReason):
    """An exception raised by step code and caught at the step boundary."""

    error_kind: ClassVar[ErrorKind] = ErrorKind.EXCEPTIONAL

    captured_exception: BaseException | None = None
    traceback_text: str | None = dataclasses.field(default=None, repr=False)

    @classmethod
    def capture(
        cls, exc: BaseException, settings: Settings | None = None
    ) -> ExceptionalError:
        """Wrap *exc*, deriving the message from it."""
        settings = settings or current_settings()
        tb_text = None
        if settings.capture_tracebacks:
            tb_text = "".join(traceback.format_exception(exc))
        return cls(
            message=describe(exc, limit=settings.max_message_length),
            captured_exception=exc,
            traceback_text=tb_text,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class PromiseRejection(ErrorReason):
    """The failure of an awaited operation, kept apart from invocation faults."""

    error_kind: ClassVar[ErrorKind] = ErrorKind.REJECTION

    rejection_reason: Any = None

    @classmethod
    def capture(
        cls, reason: Any, settings: Settings | None = None
    ) -> PromiseRejection:
        """Wrap the rejection value, deriving the message from it."""
        settings = settings or current_settings()
        return cls(
            message=describe(reason, limit=settings.max_message_length),
            rejection_reason=reason,
        )


def is_error(reason: Reason) -> bool:
    """Return True when *reason* is tagged as an error."""
    return reason.kind is ReasonKind.ERROR


def describe(value: Any, *, limit: int = 500) -> str:
    """Render a captured value as a one-line message of at most *limit* chars.

    Exceptions render as ``"TypeName: text"`` (or just the type name when the
    text is empty); anything else renders with ``repr()``. A value whose
    ``str()`` or ``repr()`` raises renders as ``"TypeName: <unprintable>"``.
    """
    try:
        if isinstance(value, BaseException):
            text = str(value)
            msg = f"{type(value).__name__}: {text}" if text else type(value).__name__
        else:
            msg = repr(value)
    except Exception:
        msg = f"{type(value).__name__}: <unprintable>"
    msg = " ".join(msg.split())
    if len(msg) > limit:
        msg = msg[: max(limit - 3, 0)] + "..."
    return msg
