"""Result type for explicit error capture.

Adverbs such as ``safely`` turn raised exceptions into data. Callers match on
``Success``/``Failure`` instead of wrapping map calls in broad try/except
blocks, which keeps failures a predictable part of the data flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import typing

if typing.TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Immutable description of a captured failure.

    Equality ignores ``cause`` so two captures of the same failure compare
    equal even though the exception instances differ.
    """

    message: str
    kind: str
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        """Build an ``ErrorInfo`` from a raised exception.

        Never raises, even when the exception's own ``__str__`` does.
        """
        kind = type(exc).__name__
        try:
            message = str(exc)
        except Exception:
            message = f"<unprintable {kind}>"
        return cls(message=message, kind=kind, cause=exc)

    @property
    def root_cause(self) -> BaseException | None:
        """Return the innermost exception of the cause chain."""
        cur = self.cause
        seen: set[int] = set()
        while cur is not None and id(cur) not in seen:
            seen.add(id(cur))
            nxt = cur.__cause__ or cur.__context__
            if nxt is None:
                break
            cur = nxt
        return cur

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass(frozen=True, slots=True)
class Success[T]:
    """A successful invocation."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: object) -> T:  # noqa: ARG002
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    """A failed invocation, containing the captured error."""

    error: ErrorInfo

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> typing.NoReturn:
        """Re-raise the captured exception, or a RuntimeError if none was kept."""
        if self.error.cause is not None:
            raise self.error.cause
        raise RuntimeError(str(self.error))

    def unwrap_or[U](self, default: U) -> U:
        return default


type Result[T] = Success[T] | Failure


def transpose_results[T](
    results: Iterable[Result[T]],
) -> tuple[list[T], list[ErrorInfo]]:
    """Split results into successful values and captured errors.

    Both lists keep the relative order of the input.

    Example:
        values, errors = transpose_results(map(paths, safely(load)))
    """
    values: list[T] = []
    errors: list[ErrorInfo] = []
    for result in results:
        match result:
            case Success(value=value):
                values.append(value)
            case Failure(error=error):
                errors.append(error)
            case _:
                raise TypeError(
                    f"Expected Success or Failure, got {type(result).__name__}"
                )
    return values, errors
