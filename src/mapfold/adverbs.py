"""Adverbs: wrappers that change how a function reports or repeats work.

``safely`` and ``possibly`` are total: the wrapped function never raises an
``Exception`` subclass. Everything else keeps propagating errors and only
adds behavior (capturing output, retrying, counting calls).

None of the adverbs roll back side effects that happened before a failure.
"""

from __future__ import annotations

from contextlib import redirect_stdout
from dataclasses import dataclass
import functools
import io
import logging
import time
from typing import TYPE_CHECKING, Any, TypeVar
import warnings

from mapfold._validation import mark_total, require_callable
from mapfold.config import get_config
from mapfold.result import ErrorInfo, Failure, Result, Success
from mapfold.retry import RetryPolicy, retry_call, should_retry_default

if TYPE_CHECKING:
    from collections.abc import Callable

R = TypeVar("R")
D = TypeVar("D")

log = logging.getLogger(__name__)


def _describe(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or type(func).__name__


def safely(f: Callable[..., R]) -> Callable[..., Result[R]]:
    """Wrap *f* so every call returns ``Success(value)`` or ``Failure(error)``.

    Example:
        >>> results = map([1, "a", 3], safely(lambda x: 10 / x))
        >>> [r.is_success for r in results]
        [True, False, True]

    Only ``Exception`` subclasses are captured; ``KeyboardInterrupt`` and
    ``SystemExit`` still propagate.
    """
    require_callable(f, "f")

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Result[R]:
        # Resolved up front: a bad config must not surface from the capture path.
        log_failures = get_config().log_failures
        try:
            return Success(f(*args, **kwargs))
        except Exception as exc:
            info = ErrorInfo.from_exception(exc)
            if log_failures:
                log.debug("safely(%s) captured %s", _describe(f), info)
            return Failure(info)

    return mark_total(wrapper)


def possibly(f: Callable[..., R], default: D) -> Callable[..., R | D]:
    """Wrap *f* so a failing call returns *default* instead of raising.

    The caller cannot tell a substituted default from a real result, so only
    use this where *default* is a safe sentinel. Use ``safely`` otherwise.
    """
    require_callable(f, "f")

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> R | D:
        log_failures = get_config().log_failures
        try:
            return f(*args, **kwargs)
        except Exception as exc:
            if log_failures:
                log.debug(
                    "possibly(%s) substituted default after %s",
                    _describe(f),
                    ErrorInfo.from_exception(exc),
                )
            return default

    return mark_total(wrapper)


@dataclass(frozen=True, slots=True)
class Captured[R]:
    """Return value of a ``quietly`` call plus everything it printed or emitted."""

    result: R
    output: str
    warnings: tuple[str, ...]
    messages: tuple[str, ...]


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.NOTSET)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def quietly(f: Callable[..., R]) -> Callable[..., Captured[R]]:
    """Wrap *f* to capture stdout, warnings and log records instead of emitting them.

    Log records are captured when they reach the root logger, so the usual
    logger levels still apply. Exceptions from *f* propagate unchanged.
    """
    require_callable(f, "f")

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Captured[R]:
        buffer = io.StringIO()
        handler = _ListHandler()
        root = logging.getLogger()
        root.addHandler(handler)
        try:
            with (
                warnings.catch_warnings(record=True) as caught,
                redirect_stdout(buffer),
            ):
                warnings.simplefilter("always")
                value = f(*args, **kwargs)
        finally:
            root.removeHandler(handler)
        return Captured(
            result=value,
            output=buffer.getvalue(),
            warnings=tuple(str(w.message) for w in caught),
            messages=tuple(r.getMessage() for r in handler.records),
        )

    return wrapper


def insistently(
    f: Callable[..., R],
    policy: RetryPolicy | None = None,
    *,
    should_retry: Callable[[BaseException], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[..., R]:
    """Wrap *f* so failing calls are retried with backoff.

    Retrying is a caller-side layer: mappers and reducers never retry on
    their own. Without an explicit *policy* the active ``Config.retry`` is
    read at call time, and without *should_retry* the default classifier
    applies. When attempts run out the last error is re-raised.
    """
    require_callable(f, "f")
    retry_if = should_retry if should_retry is not None else should_retry_default

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> R:
        active = policy if policy is not None else get_config().retry
        return retry_call(
            lambda: f(*args, **kwargs),
            policy=active,
            should_retry=retry_if,
            sleep=sleep,
        )

    return wrapper


def _print_dot(calls: int) -> None:  # noqa: ARG001
    print(".", end="", flush=True)  # noqa: T201


class ProgressCounter:
    """Callable wrapper that reports progress every ``every`` calls.

    The counter is plain instance state: ``calls`` counts invocations
    (including failing ones) and ``ticks`` counts how often ``sink`` ran.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        every: int = 1,
        sink: Callable[[int], None] | None = None,
    ) -> None:
        require_callable(func, "func")
        if not isinstance(every, int) or every < 1:
            raise ValueError(f"every must be a positive int, got {every!r}")
        functools.update_wrapper(self, func)
        self.func = func
        self.every = every
        self.sink = sink if sink is not None else _print_dot
        self.calls = 0
        self.ticks = 0

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        if self.calls % self.every == 0:
            self.ticks += 1
            self.sink(self.calls)
        return self.func(*args, **kwargs)

    def reset(self) -> None:
        self.calls = 0
        self.ticks = 0

    def __repr__(self) -> str:
        return (
            f"ProgressCounter({_describe(self.func)}, every={self.every}, "
            f"calls={self.calls})"
        )


def with_progress(
    f: Callable[..., R],
    every: int = 1,
    sink: Callable[[int], None] | None = None,
) -> ProgressCounter:
    """Wrap *f* in a fresh ``ProgressCounter``; the default sink prints a dot."""
    return ProgressCounter(f, every=every, sink=sink)
