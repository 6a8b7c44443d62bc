"""Per-operation telemetry for map and reduce calls.

Off unless ``MAPFOLD_TELEMETRY=1``. While off, ``TelemetryContext()`` hands
back one shared no-op object so instrumented loops pay almost nothing. While
on, every operation scope reports its duration and failures are counted
under the same dotted scope path (``mapfold.map.failures``).
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

# Evaluated once at import time; tests flip the module attribute directly.
_TELEMETRY_ENABLED = os.getenv("MAPFOLD_TELEMETRY") == "1"

_scope_path_var: ContextVar[tuple[str, ...]] = ContextVar(
    "mapfold_scope_path",
    default=(),
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Anything that accepts scope timings and metric samples."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Stateless stand-in returned while telemetry is off."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> None:
        return None

    @property
    def is_enabled(self) -> bool:
        return False

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


def _placement(path: tuple[str, ...]) -> dict[str, Any]:
    return {"depth": len(path), "parent_scope": ".".join(path) or None}


class _EnabledTelemetryContext:
    """Context that times scopes and forwards samples to its reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @property
    def is_enabled(self) -> bool:
        return True

    @contextmanager
    def __call__(
        self, name: str, **metadata: Any
    ) -> Iterator["_EnabledTelemetryContext"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        parent = _scope_path_var.get()
        token = _scope_path_var.set((*parent, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _scope_path_var.reset(token)
            self._emit(
                "record_timing",
                ".".join((*parent, name)),
                elapsed,
                {**_placement(parent), **metadata},
            )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Add *increment* to the counter *name* inside the current scope."""
        path = _scope_path_var.get()
        self._emit(
            "record_metric",
            ".".join((*path, name)),
            increment,
            {**_placement(path), "metric_type": "counter", **metadata},
        )

    def _emit(
        self, method: str, scope: str, value: Any, metadata: dict[str, Any]
    ) -> None:
        # A broken reporter must never fail the operation being measured.
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )


type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext

_NO_OP_SINGLETON = _NoOpTelemetryContext()


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return the context for one instrumented operation.

    Enabled contexts without explicit reporters share ``default_reporter()``
    so samples accumulate across calls.
    """
    if _TELEMETRY_ENABLED:
        return _EnabledTelemetryContext(*(reporters or (_DEFAULT_REPORTER,)))
    return _NO_OP_SINGLETON


class MemoryReporter:
    """Keeps the most recent samples per scope in memory."""

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def _bucket(self, table: dict[str, deque[Any]], scope: str) -> deque[Any]:
        return table.setdefault(scope, deque(maxlen=self.max_entries))

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._bucket(self.timings, scope).append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._bucket(self.metrics, scope).append((value, metadata))

    def reset(self) -> None:
        self.timings.clear()
        self.metrics.clear()

    def as_dict(self) -> dict[str, Any]:
        """Snapshot of everything recorded, as plain lists."""
        return {
            "timings": {scope: list(rows) for scope, rows in self.timings.items()},
            "metrics": {scope: list(rows) for scope, rows in self.metrics.items()},
        }

    def get_report(self) -> str:
        """One line per scope: call count and timing totals, then counter sums."""
        lines = ["mapfold telemetry"]
        for scope, rows in sorted(self.timings.items()):
            total = sum(duration for duration, _ in rows)
            lines.append(
                f"  {scope:<30} calls={len(rows):<5} "
                f"total={total:.4f}s mean={total / len(rows):.4f}s"
            )
        for scope, rows in sorted(self.metrics.items()):
            total = sum(v for v, _ in rows if isinstance(v, int | float))
            lines.append(f"  {scope:<30} events={len(rows):<5} sum={total:g}")
        return "\n".join(lines)


_DEFAULT_REPORTER = MemoryReporter()


def default_reporter() -> MemoryReporter:
    """Return the shared reporter that enabled contexts fall back to."""
    return _DEFAULT_REPORTER
