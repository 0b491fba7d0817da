"""The pipeline carrier: accumulated reasons plus one retained state value.

A ``Result`` is created by running an initial action and is then mutated in
place by every chained step. Faults raised by step code are caught at the
step boundary and recorded as reasons; they never propagate to the caller.

Once any error reason is recorded the pipeline is failed for good: later
steps and gates are skipped without invoking caller code. The one way out is
a contingency, a child pipeline spawned by ``fail_if`` at the moment of
failure.

Example:
    result = (
        Result.create_from(lambda: load_order(order_id), "checkout")
        .ok_if(lambda order: order.items, "order has no items")
        .fail_if(
            lambda order: order.total > limit,
            OverLimit("total above limit"),
            Contingency(request_approval, "approval"),
        )
        .bind(charge)
    )
    if result.is_failed:
        report(result.errors)
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, cast
import weakref

from railroute.config import Settings, current_settings
from railroute.errors import ConfigurationError, InternalError
from railroute.reasons import (
    ErrorReason,
    ExceptionalError,
    GenericError,
    InfoReason,
    PromiseRejection,
    Reason,
    ReasonKind,
    is_error,
)
from railroute.state import EMPTY, Present, unwrap
from railroute.steps import Contingency, IgnoreInput

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from railroute.state import StateCache

    type Step[TIn, TOut] = Callable[[TIn], TOut] | IgnoreInput[TOut]
    type AsyncStep[TIn, TOut] = Step[TIn, Awaitable[TOut] | TOut]

log = logging.getLogger(__name__)

__all__ = ["Result", "create_from", "create_from_async"]


class Result[TState]:
    """Success/failure and current-state carrier threaded through a chain of steps."""

    __slots__ = (
        "__weakref__",
        "_child",
        "_parent",
        "_reasons",
        "_routine_name",
        "_settings",
        "_state",
    )

    def __init__(
        self, routine_name: str = "routine", *, settings: Settings | None = None
    ) -> None:
        """Create an empty, successful pipeline with no retained state.

        Args:
            routine_name: Descriptive label for the routine this pipeline runs.
            settings: Settings to use; defaults to the ambient settings.
        """
        self._routine_name = routine_name
        self._settings = settings or current_settings()
        self._reasons: list[Reason] = []
        self._state: StateCache[TState] = EMPTY
        self._parent: weakref.ref[Result[Any]] | None = None
        self._child: Result[Any] | None = None

    # --- Entry points ---

    @classmethod
    def create_from[T](
        cls,
        action: Callable[[], T],
        routine_name: str | None = None,
        *,
        settings: Settings | None = None,
    ) -> Result[T]:
        """Run *action* once and start a pipeline from its outcome.

        The returned value (``None`` included) becomes the current state. An
        exception is recorded as an ``ExceptionalError`` and nothing is
        retained. This never raises for faults in *action*.
        """
        result: Result[T] = cls(
            _name_of(action) if routine_name is None else routine_name,
            settings=settings,
        )
        ok, value = result._evaluate(IgnoreInput(action))
        if ok:
            result._retain(value, "create_from")
        return result

    @classmethod
    async def create_from_async[T](
        cls,
        action: Callable[[], Awaitable[T] | T],
        routine_name: str | None = None,
        *,
        settings: Settings | None = None,
    ) -> Result[T]:
        """Await *action*'s operation and start a pipeline from its outcome.

        An exception raised while calling *action* is an ``ExceptionalError``;
        one raised while awaiting the operation it returned is a
        ``PromiseRejection``.
        """
        result: Result[T] = cls(
            _name_of(action) if routine_name is None else routine_name,
            settings=settings,
        )
        ok, value = await result._evaluate_async(IgnoreInput(action))
        if ok:
            result._state = Present(value)
        return result

    # --- Step chaining ---

    def bind[TOut](self, step: Step[TState, TOut]) -> Result[TOut]:
        """Run *step* and retain its return value as the new current state.

        Skipped entirely on a failed pipeline. A raised exception is recorded
        and the previously retained state stays readable.
        """
        if not self._skip("bind"):
            ok, value = self._evaluate(step)
            if ok:
                self._retain(value, "bind")
        return cast("Result[TOut]", self)

    async def bind_async[TOut](self, step: AsyncStep[TState, TOut]) -> Result[TOut]:
        """Async form of ``bind``: the step's operation is awaited before retaining."""
        if not self._skip("bind_async"):
            ok, value = await self._evaluate_async(step)
            if ok:
                self._state = Present(value)
        return cast("Result[TOut]", self)

    # --- Conditional gates ---

    def ok_if(
        self, predicate: Step[TState, Any], error: ErrorReason | str
    ) -> Result[TState]:
        """Record *error* unless *predicate* returns exactly ``True``.

        A predicate that raises is recorded as an ``ExceptionalError`` and
        *error* is not recorded. The current state is never changed.
        """
        reason = _as_error(error)
        if not self._skip("ok_if"):
            ok, verdict = self._evaluate(predicate)
            if ok and verdict is not True:
                self._reasons.append(reason)
        return self

    async def ok_if_async(
        self, predicate: AsyncStep[TState, Any], error: ErrorReason | str
    ) -> Result[TState]:
        """Async form of ``ok_if``; a failed predicate operation is a ``PromiseRejection``."""
        reason = _as_error(error)
        if not self._skip("ok_if_async"):
            ok, verdict = await self._evaluate_async(predicate)
            if ok and verdict is not True:
                self._reasons.append(reason)
        return self

    def fail_if(
        self,
        predicate: Step[TState, Any],
        error: ErrorReason | str,
        contingency: Contingency | None = None,
    ) -> Result[TState]:
        """Record *error* when *predicate* returns exactly ``True``.

        When that happens and a *contingency* is given, a child pipeline is
        attached and ``contingency.routine(child)`` runs immediately. Errors
        raised by the routine itself are not caught. A predicate that raises
        is recorded as an ``ExceptionalError``; neither *error* nor the
        contingency follows.
        """
        reason = _as_error(error)
        _check_contingency(contingency)
        if not self._skip("fail_if"):
            ok, verdict = self._evaluate(predicate)
            if ok and verdict is True:
                self._reasons.append(reason)
                if contingency is not None:
                    outcome = contingency.routine(self._spawn(contingency))
                    self._warn_if_awaitable(outcome, "fail_if contingency")
        return self

    async def fail_if_async(
        self,
        predicate: AsyncStep[TState, Any],
        error: ErrorReason | str,
        contingency: Contingency | None = None,
    ) -> Result[TState]:
        """Async form of ``fail_if``; an async contingency routine is awaited."""
        reason = _as_error(error)
        _check_contingency(contingency)
        if not self._skip("fail_if_async"):
            ok, verdict = await self._evaluate_async(predicate)
            if ok and verdict is True:
                self._reasons.append(reason)
                if contingency is not None:
                    outcome = contingency.routine(self._spawn(contingency))
                    if inspect.isawaitable(outcome):
                        await outcome
        return self

    def note(self, info: InfoReason | str) -> Result[TState]:
        """Append informational commentary; success is unaffected."""
        if isinstance(info, str):
            info = InfoReason(info)
        elif not isinstance(info, Reason) or info.kind is not ReasonKind.INFO:
            raise ConfigurationError(
                f"note() expects an InfoReason or str, got {type(info).__name__}",
                hint="Record errors through ok_if()/fail_if() instead.",
            )
        self._reasons.append(info)
        return self

    # --- Read-only views ---

    @property
    def is_failed(self) -> bool:
        """True once any error reason has been recorded."""
        return any(is_error(r) for r in self._reasons)

    @property
    def is_success(self) -> bool:
        return not self.is_failed

    @property
    def current_state(self) -> TState:
        """The most recently retained value.

        Raises:
            MissingStateError: If no step has retained a value yet.
        """
        return unwrap(self._state, self._routine_name)

    value = current_state

    @property
    def has_state(self) -> bool:
        return isinstance(self._state, Present)

    @property
    def reasons(self) -> list[Reason]:
        """All reasons in recording order (a copy)."""
        return list(self._reasons)

    @property
    def errors(self) -> list[ErrorReason]:
        return cast("list[ErrorReason]", [r for r in self._reasons if is_error(r)])

    @property
    def infos(self) -> list[InfoReason]:
        return cast(
            "list[InfoReason]",
            [r for r in self._reasons if r.kind is ReasonKind.INFO],
        )

    @property
    def routine_name(self) -> str:
        return self._routine_name

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def parent(self) -> Result[Any] | None:
        """The pipeline whose failure spawned this one, if still alive."""
        return self._parent() if self._parent is not None else None

    @property
    def child(self) -> Result[Any] | None:
        return self._child

    @property
    def root(self) -> Result[Any]:
        """The top-most reachable ancestor (``self`` for a root pipeline)."""
        node: Result[Any] = self
        while (parent := node.parent) is not None:
            node = parent
        return node

    def __repr__(self) -> str:
        status = "failed" if self.is_failed else "success"
        state = "present" if self.has_state else "empty"
        return (
            f"Result(routine_name={self._routine_name!r}, status={status!r}, "
            f"reasons={len(self._reasons)}, state={state})"
        )

    # --- Internals ---

    def _skip(self, op: str) -> bool:
        if self.is_failed:
            log.debug("Skipping %s on failed routine %r", op, self._routine_name)
            return True
        return False

    def _invoke(self, step: Step[TState, Any]) -> Any:
        if isinstance(step, IgnoreInput):
            return step()
        return step(self.current_state)

    def _evaluate(self, step: Step[TState, Any]) -> tuple[bool, Any]:
        """Run *step*; on an exception record it and return ``(False, None)``."""
        try:
            return True, self._invoke(step)
        except Exception as e:
            self._capture(e)
            return False, None

    async def _evaluate_async(self, step: AsyncStep[TState, Any]) -> tuple[bool, Any]:
        """Run *step* and await its operation, recording invocation and awaited faults apart."""
        try:
            pending = self._invoke(step)
        except Exception as e:
            self._capture(e)
            return False, None
        if not inspect.isawaitable(pending):
            return True, pending
        try:
            return True, await pending
        except Exception as e:
            reason = PromiseRejection.capture(e, self._settings)
            self._reasons.append(reason)
            log.log(
                self._settings.capture_log_level,
                "Routine %r captured rejection: %s",
                self._routine_name,
                reason.message,
            )
            return False, None

    def _capture(self, exc: Exception) -> None:
        reason = ExceptionalError.capture(exc, self._settings)
        self._reasons.append(reason)
        log.log(
            self._settings.capture_log_level,
            "Routine %r captured exception: %s",
            self._routine_name,
            reason.message,
        )

    def _retain(self, value: Any, op: str) -> None:
        self._warn_if_awaitable(value, op)
        self._state = Present(value)

    def _warn_if_awaitable(self, value: Any, op: str) -> None:
        if self._settings.warn_on_awaitable and inspect.isawaitable(value):
            log.warning(
                "%s in routine %r returned an awaitable; use the *_async form to await it",
                op,
                self._routine_name,
            )

    def _spawn(self, contingency: Contingency) -> Result[Any]:
        if self._child is not None:
            raise InternalError(
                f"Routine {self._routine_name!r} already has a contingency attached",
                hint="A pipeline can fail, and so spawn a contingency, only once.",
            )
        child: Result[Any] = type(self)(
            contingency.routine_name, settings=self._settings
        )
        child._parent = weakref.ref(self)
        self._child = child
        log.info(
            "Routine %r failed; running contingency %r",
            self._routine_name,
            contingency.routine_name,
        )
        return child


def _as_error(error: ErrorReason | str) -> ErrorReason:
    if isinstance(error, str):
        return GenericError(error)
    if isinstance(error, Reason) and is_error(error):
        return cast("ErrorReason", error)
    raise ConfigurationError(
        f"Expected an ErrorReason or str, got {type(error).__name__}",
        hint="Pass a GenericError('...') or your own ErrorReason subclass.",
    )


def _check_contingency(contingency: Contingency | None) -> None:
    if contingency is not None and not isinstance(contingency, Contingency):
        raise ConfigurationError(
            f"Expected a Contingency, got {type(contingency).__name__}",
            hint="Pass Contingency(routine, routine_name).",
        )


def _name_of(action: Callable[..., Any]) -> str:
    return (
        getattr(action, "__qualname__", None)
        or getattr(action, "__name__", None)
        or "routine"
    )


create_from = Result.create_from
create_from_async = Result.create_from_async
