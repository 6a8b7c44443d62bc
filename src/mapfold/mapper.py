"""Element-wise application of a function over ordered sequences.

Every variant snapshots its inputs, validates them up front, then calls the
function exactly once per element in ascending index order. The first
failure aborts the whole call with ``ElementFailure``; wrap the function with
``safely`` or ``possibly`` to capture failures per element instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from mapfold._validation import check_inputs, require_callable, snapshot
from mapfold.errors import ElementFailure, LengthMismatchError, TypeMismatchError
from mapfold.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

T = TypeVar("T")
R = TypeVar("R")

log = logging.getLogger(__name__)


def _run(
    operation: str,
    func: Callable[..., Any],
    rows: tuple[tuple[Any, ...], ...],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    coerce: Callable[[int, Any], Any] | None = None,
) -> list[Any]:
    """Invoke *func* once per row, left to right, collecting the results."""
    tele = TelemetryContext()
    out: list[Any] = []
    with tele(f"mapfold.{operation}", size=len(rows)):
        for index, row in enumerate(rows):
            try:
                value = func(*row, *args, **kwargs)
            except Exception as exc:
                tele.count("failures")
                log.debug(
                    "%s aborted at index %d of %d: %s",
                    operation,
                    index,
                    len(rows),
                    type(exc).__name__,
                )
                raise ElementFailure(
                    str(exc),
                    index=index,
                    underlying_error=exc,
                    operation=operation,
                ) from exc
            if coerce is not None:
                value = coerce(index, value)
            out.append(value)
    return out


def _equal_length_columns(
    sequences: Iterable[Any], operation: str
) -> tuple[tuple[Any, ...], ...]:
    columns = tuple(
        snapshot(seq, field_name=f"sequences[{i}]") for i, seq in enumerate(sequences)
    )
    lengths = {len(column) for column in columns}
    if len(lengths) > 1:
        raise LengthMismatchError(
            f"{operation}: sequences have different lengths "
            f"{[len(column) for column in columns]}",
            hint="All inputs must have the same number of elements.",
        )
    return columns


def map(  # noqa: A001
    sequence: Iterable[T], f: Callable[..., R], /, *args: Any, **kwargs: Any
) -> list[R]:
    """Apply *f* to every element and return the results in input order.

    Extra positional and keyword arguments are passed to every call after
    the element: ``map([1, 2], pow, 3) == [1, 8]``.

    Raises:
        TypeError: If *f* is not callable or *sequence* is not an ordered iterable.
        TypeMismatchError: If an element does not match *f*'s annotated input
            type. Raised before *f* is called at all.
        ElementFailure: If *f* raises; ``index`` tells which element failed.
    """
    items = snapshot(sequence)
    require_callable(f, "f")
    check_inputs(f, (items,), operation="map")
    return _run("map", f, tuple((x,) for x in items), args, kwargs)


def _coercer(output_type: type, operation: str) -> Callable[[int, Any], Any]:
    def coerce(index: int, value: Any) -> Any:
        if not (isinstance(value, bool) and output_type in (int, float)):
            if output_type is float and isinstance(value, int):
                return float(value)
            if isinstance(value, output_type):
                return value
        raise TypeMismatchError(
            f"{operation}: result at index {index} is {type(value).__name__}, "
            f"expected {output_type.__name__}",
            index=index,
            expected=output_type.__name__,
            actual=type(value).__name__,
        )

    return coerce


def _map_typed(
    operation: str,
    sequence: Iterable[Any],
    f: Callable[..., Any],
    output_type: type,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> list[Any]:
    items = snapshot(sequence)
    require_callable(f, "f")
    if not isinstance(output_type, type):
        raise TypeError(
            f"output_type: expected a class, got {type(output_type).__name__}"
        )
    check_inputs(f, (items,), operation=operation)
    return _run(
        operation,
        f,
        tuple((x,) for x in items),
        args,
        kwargs,
        coerce=_coercer(output_type, operation),
    )


def map_as(
    sequence: Iterable[Any],
    f: Callable[..., Any],
    output_type: type[R],
    /,
    *args: Any,
    **kwargs: Any,
) -> list[R]:
    """Like ``map`` but every result must be an instance of *output_type*.

    ``bool`` results only satisfy ``bool``; ``int`` results are widened
    when *output_type* is ``float``. The first offending result raises
    ``TypeMismatchError`` and stops the iteration.
    """
    return _map_typed("map_as", sequence, f, output_type, args, kwargs)


def map_int(
    sequence: Iterable[Any], f: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> list[int]:
    return _map_typed("map_int", sequence, f, int, args, kwargs)


def map_float(
    sequence: Iterable[Any], f: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> list[float]:
    return _map_typed("map_float", sequence, f, float, args, kwargs)


def map_str(
    sequence: Iterable[Any], f: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> list[str]:
    return _map_typed("map_str", sequence, f, str, args, kwargs)


def map_bool(
    sequence: Iterable[Any], f: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> list[bool]:
    return _map_typed("map_bool", sequence, f, bool, args, kwargs)


def map2(
    xs: Iterable[Any],
    ys: Iterable[Any],
    f: Callable[..., R],
    /,
    *args: Any,
    **kwargs: Any,
) -> list[R]:
    """Apply *f* pairwise: ``out[i] == f(xs[i], ys[i], *args, **kwargs)``.

    Raises ``LengthMismatchError`` before any call if the lengths differ.
    """
    require_callable(f, "f")
    columns = _equal_length_columns((xs, ys), "map2")
    check_inputs(f, columns, operation="map2")
    return _run("map2", f, tuple(zip(*columns, strict=True)), args, kwargs)


def pmap(
    sequences: Iterable[Iterable[Any]],
    f: Callable[..., R],
    /,
    *args: Any,
    **kwargs: Any,
) -> list[R]:
    """Apply *f* across any number of equal-length sequences side by side.

    ``pmap([xs, ys, zs], f)[i] == f(xs[i], ys[i], zs[i])``. An empty list of
    sequences yields an empty result.
    """
    require_callable(f, "f")
    columns = _equal_length_columns(
        snapshot(sequences, field_name="sequences"), "pmap"
    )
    if not columns:
        return []
    check_inputs(f, columns, operation="pmap")
    return _run("pmap", f, tuple(zip(*columns, strict=True)), args, kwargs)


def imap(
    sequence: Iterable[T], f: Callable[..., R], /, *args: Any, **kwargs: Any
) -> list[R]:
    """Like ``map`` but *f* also receives the element's index: ``f(x, i, ...)``."""
    items = snapshot(sequence)
    require_callable(f, "f")
    check_inputs(f, (items,), operation="imap")
    return _run("imap", f, tuple((x, i) for i, x in enumerate(items)), args, kwargs)


def walk(
    sequence: Iterable[T], f: Callable[..., Any], /, *args: Any, **kwargs: Any
) -> list[T]:
    """Call *f* on every element for its side effects and return the input.

    Return values of *f* are discarded. Order, call count and failure
    behavior are the same as for ``map``, which makes ``walk`` suitable for
    feeding sinks such as loggers, plot writers or files.
    """
    items = snapshot(sequence)
    require_callable(f, "f")
    check_inputs(f, (items,), operation="walk")
    _run("walk", f, tuple((x,) for x in items), args, kwargs)
    return list(items)
