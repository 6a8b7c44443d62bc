"""Left folds: ``reduce`` and its tracing variant ``accumulate``.

Both fold strictly from index 0 to n-1, calling ``combine(acc, element)``.
The accumulator lives only for the duration of one call.

Failure policy: a failing ``combine`` aborts the fold with ``ElementFailure``
and no partial accumulator is returned. ``accumulate`` can attach the prefix
computed so far to the raised error (``keep_partial=True``) so callers can
resume from it, but it never returns a truncated trace.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from mapfold._validation import check_inputs, require_callable, snapshot
from mapfold.errors import ElementFailure, EmptyReductionError
from mapfold.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

A = TypeVar("A")
T = TypeVar("T")

log = logging.getLogger(__name__)


def _fold(
    operation: str,
    items: tuple[Any, ...],
    combine: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    *,
    init: Any,
    trace: list[Any] | None = None,
    keep_partial: bool = False,
) -> Any:
    require_callable(combine, "combine")
    if init is None:
        if not items:
            raise EmptyReductionError(
                f"{operation}() of an empty sequence with no initial value",
                hint="Pass init=... to define the result for empty input.",
            )
        acc, start = items[0], 1
    else:
        acc, start = init, 0

    check_inputs(
        combine,
        (items[start:],),
        operation=operation,
        first_position=1,
        start_index=start,
    )

    if trace is not None:
        trace.append(acc)

    tele = TelemetryContext()
    with tele(f"mapfold.{operation}", size=len(items)):
        for index in range(start, len(items)):
            try:
                acc = combine(acc, items[index], *args, **kwargs)
            except Exception as exc:
                tele.count("failures")
                log.debug(
                    "%s aborted at index %d of %d: %s",
                    operation,
                    index,
                    len(items),
                    type(exc).__name__,
                )
                partial = tuple(trace) if keep_partial and trace is not None else None
                raise ElementFailure(
                    str(exc),
                    index=index,
                    underlying_error=exc,
                    operation=operation,
                    partial=partial,
                ) from exc
            if trace is not None:
                trace.append(acc)
    return acc


def reduce(
    sequence: Iterable[T],
    combine: Callable[..., A],
    /,
    *args: Any,
    init: A | None = None,
    **kwargs: Any,
) -> A:
    """Fold *sequence* into a single value with ``combine(acc, element)``.

    Without *init* the first element seeds the accumulator and folding starts
    at index 1. ``None`` means "no initial value".

    Example:
        >>> import operator
        >>> reduce([1, 2, 3, 4, 5], operator.add, init=0)
        15

    Raises:
        EmptyReductionError: If *sequence* is empty and *init* is None.
        ElementFailure: If *combine* raises; ``index`` is the element's index.
    """
    items = snapshot(sequence)
    return _fold("reduce", items, combine, args, kwargs, init=init)


def accumulate(
    sequence: Iterable[T],
    combine: Callable[..., A],
    /,
    *args: Any,
    init: A | None = None,
    keep_partial: bool = False,
    **kwargs: Any,
) -> list[A]:
    """Fold like ``reduce`` but return every intermediate accumulator.

    The result has ``len(sequence) + 1`` entries when *init* is given (the
    first one is *init* itself) and ``len(sequence)`` otherwise. Entry ``k``
    equals ``reduce`` over the matching prefix.

    Example:
        >>> import operator
        >>> accumulate([1, 2, 3, 4, 5], operator.add, init=0)
        [0, 1, 3, 6, 10, 15]

    With ``keep_partial=True`` a failure still raises, but the trace computed
    before the failing step is attached to ``ElementFailure.partial``.
    """
    items = snapshot(sequence)
    trace: list[A] = []
    _fold(
        "accumulate",
        items,
        combine,
        args,
        kwargs,
        init=init,
        trace=trace,
        keep_partial=keep_partial,
    )
    return trace
