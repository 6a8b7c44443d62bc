"""Minimal synchronous retry with explicit error contracts.

Mappers and reducers never retry on their own. This module backs the
``insistently`` adverb, which callers opt into at the call site.

Design goals:
- Small API surface
- Explicit state (policy + attempt counters)
- No brittle substring matching for retry decisions
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
import time
from typing import TYPE_CHECKING, TypeVar

from mapfold.errors import (
    ConfigurationError,
    LengthMismatchError,
    TypeMismatchError,
    _walk_exception_chain,
)

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")

log = logging.getLogger(__name__)

# Errors that describe the call itself rather than a transient condition.
_NEVER_RETRY: tuple[type[BaseException], ...] = (
    ConfigurationError,
    LengthMismatchError,
    TypeMismatchError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with exponential backoff and optional jitter."""

    max_attempts: int = 3
    initial_delay_s: float = 0.2
    backoff_multiplier: float = 2.0
    max_delay_s: float = 5.0
    jitter: bool = True  # "full jitter" when enabled
    max_elapsed_s: float | None = 30.0

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_attempts < 1:
            raise ValueError("RetryPolicy.max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("RetryPolicy.initial_delay_s must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("RetryPolicy.backoff_multiplier must be > 0")
        if self.max_delay_s < 0:
            raise ValueError("RetryPolicy.max_delay_s must be >= 0")
        if self.max_elapsed_s is not None and self.max_elapsed_s < 0:
            raise ValueError("RetryPolicy.max_elapsed_s must be >= 0 or None")


def should_retry_default(exc: BaseException) -> bool:
    """Return True when *exc* may succeed on a later attempt.

    Contract:
    - Only ``Exception`` subclasses are retried (interrupts never are).
    - Type, length and configuration errors anywhere in the chain are
      deterministic and never retried.
    """
    if not isinstance(exc, Exception):
        return False
    return not any(isinstance(e, _NEVER_RETRY) for e in _walk_exception_chain(exc))


def compute_backoff_delay(policy: RetryPolicy, *, retry_index: int) -> float:
    """Return the sleep before retry number *retry_index* (starting at 1)."""
    base = policy.initial_delay_s * (
        policy.backoff_multiplier ** max(0, retry_index - 1)
    )
    base = min(policy.max_delay_s, base)
    if base <= 0:
        return 0.0
    if not policy.jitter:
        return base
    # Full jitter: random in [0, base] to avoid thundering herd.
    return random.random() * base  # noqa: S311


def retry_call(
    func: Callable[[], T],
    *,
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool] = should_retry_default,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call a zero-argument function with bounded retries.

    The last exception is re-raised unchanged once attempts (or the elapsed
    budget) run out.
    """
    start = time.monotonic()

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return func()
        except Exception as exc:
            if not should_retry(exc) or attempt >= policy.max_attempts:
                raise

            delay = compute_backoff_delay(policy, retry_index=attempt)
            if policy.max_elapsed_s is not None:
                remaining = policy.max_elapsed_s - (time.monotonic() - start)
                if remaining <= 0:
                    raise
                delay = min(delay, remaining)

            log.info(
                "Attempt %d/%d failed with %s; retrying in %.3fs",
                attempt,
                policy.max_attempts,
                type(exc).__name__,
                delay,
            )
            if delay > 0:
                sleep(delay)

    # Defensive: loop should always return or raise.
    raise RuntimeError("retry_call exhausted without an exception")  # pragma: no cover
