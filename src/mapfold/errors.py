"""Exception hierarchy for mapfold."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


class MapfoldError(Exception):
    """Base exception for all mapfold errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message followed by the hint, when one is attached."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(MapfoldError):
    """Configuration validation or resolution failed."""


class EmptyReductionError(MapfoldError):
    """A reduction was requested over an empty sequence without an initial value."""


class LengthMismatchError(MapfoldError):
    """Parallel sequences passed to a multi-input map differ in length."""


class TypeMismatchError(MapfoldError):
    """An element or result does not match the declared type.

    Raised before iteration for input checks, so no element has been
    processed when the error surfaces.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        index: int | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.index = index
        self.expected = expected
        self.actual = actual


class ElementFailure(MapfoldError):
    """A per-element invocation failed.

    Always raised ``from`` the original exception, which is also available as
    ``underlying_error``. ``partial`` is only populated by ``accumulate`` when
    the caller opts into keeping the computed prefix.
    """

    def __init__(
        self,
        message: str,
        *,
        index: int,
        underlying_error: BaseException,
        operation: str,
        partial: tuple[Any, ...] | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(
            f"{operation} failed at index {index}: {message}",
            hint=hint,
        )
        self.index = index
        self.underlying_error = underlying_error
        self.operation = operation
        self.partial = partial


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
