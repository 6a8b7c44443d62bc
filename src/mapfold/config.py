"""Configuration: frozen Config plus the active-config context."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
import os
from typing import Any

from mapfold.errors import ConfigurationError
from mapfold.retry import RetryPolicy

_DOTENV_LOADED = False

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class Config:
    """Immutable configuration for mapfold operations.

    Example:
        with using(type_check=False):
            map(rows, parse_row)
    """

    #: Check elements against the first parameter's annotation before mapping.
    type_check: bool = True
    #: Log failures captured by ``safely``/``possibly`` at DEBUG level.
    log_failures: bool = True
    #: Default policy for ``insistently`` when none is passed.
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        """Validate field types so misconfiguration fails at construction."""
        for name in ("type_check", "log_failures"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigurationError(
                    f"{name} must be a bool, got {type(value).__name__}",
                    hint=f"Pass {name}=True or {name}=False.",
                )
        if not isinstance(self.retry, RetryPolicy):
            raise ConfigurationError(
                f"retry must be a RetryPolicy, got {type(self.retry).__name__}",
                hint="Build one with mapfold.RetryPolicy(max_attempts=...).",
            )

    @classmethod
    def from_env(cls) -> Config:
        """Build a Config from ``MAPFOLD_*`` environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        _load_dotenv_once()
        kwargs: dict[str, Any] = {}
        type_check = _env_bool("MAPFOLD_TYPE_CHECK")
        if type_check is not None:
            kwargs["type_check"] = type_check
        log_failures = _env_bool("MAPFOLD_LOG_FAILURES")
        if log_failures is not None:
            kwargs["log_failures"] = log_failures

        retry_kwargs: dict[str, Any] = {}
        max_attempts = _env_number("MAPFOLD_RETRY_MAX_ATTEMPTS", int)
        if max_attempts is not None:
            retry_kwargs["max_attempts"] = max_attempts
        initial_delay = _env_number("MAPFOLD_RETRY_INITIAL_DELAY_S", float)
        if initial_delay is not None:
            retry_kwargs["initial_delay_s"] = initial_delay
        if retry_kwargs:
            try:
                kwargs["retry"] = RetryPolicy(**retry_kwargs)
            except ValueError as exc:
                raise ConfigurationError(
                    str(exc), hint="Check the MAPFOLD_RETRY_* environment variables."
                ) from exc

        return cls(**kwargs)


def _load_dotenv_once() -> None:
    """Load a project .env file the first time configuration is resolved.

    Imported lazily so tests can block python-dotenv before resolution runs.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    from dotenv import load_dotenv

    load_dotenv()
    _DOTENV_LOADED = True


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{name} must be a boolean, got {raw!r}",
        hint="Use one of: 1/0, true/false, yes/no, on/off.",
    )


def _env_number(name: str, kind: type[int] | type[float]) -> int | float | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return kind(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a {kind.__name__}, got {raw!r}",
        ) from exc


_active_config: ContextVar[Config | None] = ContextVar("mapfold_config", default=None)


def get_config() -> Config:
    """Return the active configuration, resolving it from the environment once."""
    cfg = _active_config.get()
    if cfg is None:
        cfg = Config.from_env()
        _active_config.set(cfg)
    return cfg


def set_config(config: Config) -> Config:
    """Install *config* as the active configuration and return the previous one."""
    if not isinstance(config, Config):
        raise ConfigurationError(
            f"Expected Config, got {type(config).__name__}",
        )
    previous = get_config()
    _active_config.set(config)
    return previous


@contextmanager
def using(config: Config | None = None, **overrides: Any) -> Iterator[Config]:
    """Temporarily activate *config*, or the current one with *overrides* applied."""
    base = config if config is not None else get_config()
    try:
        effective = replace(base, **overrides) if overrides else base
    except TypeError as exc:
        raise ConfigurationError(
            str(exc), hint=f"Valid fields: {', '.join(Config.__dataclass_fields__)}"
        ) from exc
    token = _active_config.set(effective)
    try:
        yield effective
    finally:
        _active_config.reset(token)
