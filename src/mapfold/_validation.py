"""Internal validation helpers shared by the mapper, reducer and adverbs.

These helpers centralize sequence snapshotting, callable checks and the
annotation-driven input type check so error messages stay consistent.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Set
import inspect
import types
import typing

from mapfold.config import get_config
from mapfold.errors import TypeMismatchError

_TOTAL_ATTR = "__mapfold_total__"

# PEP 484 numeric tower: a ``float`` annotation accepts ints, ``complex`` both.
_NUMERIC_WIDENING: dict[type, tuple[type, ...]] = {
    float: (int,),
    complex: (float, int),
}


def snapshot(
    sequence: object, *, field_name: str = "sequence"
) -> tuple[typing.Any, ...]:
    """Return an immutable copy of *sequence* taken before iteration starts.

    Unordered containers are rejected since element order would be undefined.
    """
    if sequence is None:
        raise TypeError(f"{field_name}: expected a sequence, got None")
    if isinstance(sequence, Mapping | Set):
        raise TypeError(
            f"{field_name}: {type(sequence).__name__} has no defined element order; "
            "pass a list or tuple (e.g. list(d.values()))"
        )
    if not isinstance(sequence, Iterable):
        raise TypeError(
            f"{field_name}: expected an iterable, got {type(sequence).__name__}"
        )
    return tuple(sequence)


def require_callable(func: object, field_name: str) -> None:
    if not callable(func):
        raise TypeError(f"{field_name}: must be callable, got {type(func).__name__}")


def mark_total(wrapper: typing.Any) -> typing.Any:
    """Flag *wrapper* as never raising, so input type checks are skipped."""
    setattr(wrapper, _TOTAL_ATTR, True)
    return wrapper


def is_total(func: object) -> bool:
    return getattr(func, _TOTAL_ATTR, False) is True


def _as_classes(annotation: typing.Any) -> tuple[type, ...] | None:
    """Reduce an annotation to classes usable with isinstance, or None."""
    if annotation is typing.Any or annotation is object:
        return None
    if annotation is None or annotation is type(None):
        return (type(None),)
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        classes: list[type] = []
        for arg in typing.get_args(annotation):
            resolved = _as_classes(arg)
            if resolved is None:
                return None
            classes.extend(resolved)
        return tuple(classes)
    if origin is not None or not isinstance(annotation, type):
        return None
    if getattr(annotation, "_is_protocol", False):
        return None
    return (annotation, *_NUMERIC_WIDENING.get(annotation, ()))


def declared_input_types(
    func: object, count: int
) -> list[tuple[type, ...] | None]:
    """Return checkable classes for the first *count* positional parameters.

    Entries are None where no check is possible; an all-None list is returned
    for callables whose signature cannot be introspected.
    """
    unknown: list[tuple[type, ...] | None] = [None] * count
    try:
        sig = inspect.signature(func, eval_str=True)  # type: ignore[arg-type]
    except (TypeError, ValueError, NameError, AttributeError, SyntaxError):
        # Builtins and some C callables have no introspectable signature.
        return unknown

    declared: list[tuple[type, ...] | None] = []
    for param in sig.parameters.values():
        if len(declared) == count:
            break
        if param.kind is param.VAR_POSITIONAL:
            break
        if param.kind not in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            break
        if param.annotation is param.empty:
            declared.append(None)
        else:
            declared.append(_as_classes(param.annotation))
    return declared + [None] * (count - len(declared))


def check_inputs(
    func: object,
    columns: typing.Sequence[tuple[typing.Any, ...]],
    *,
    operation: str,
    first_position: int = 0,
    start_index: int = 0,
) -> None:
    """Reject elements that do not match *func*'s declared parameter types.

    ``columns[k]`` holds the elements passed as positional argument
    ``first_position + k``; reported indices are offset by *start_index*.
    Runs before any call so nothing is half-processed.
    """
    if not columns or is_total(func) or not get_config().type_check:
        return
    declared = declared_input_types(func, first_position + len(columns))
    for offset, column in enumerate(columns):
        classes = declared[first_position + offset]
        if classes is None:
            continue
        for index, element in enumerate(column, start=start_index):
            if isinstance(element, classes):
                continue
            expected = " | ".join(c.__name__ for c in classes)
            actual = type(element).__name__
            where = f"index {index}" if len(columns) == 1 else (
                f"index {index} of sequence {offset}"
            )
            raise TypeMismatchError(
                f"{operation}: element at {where} is {actual}, expected {expected}",
                hint="Convert the inputs first, or wrap the function with safely().",
                index=index,
                expected=expected,
                actual=actual,
            )
