"""Pytest configuration and fixtures.

Provides environment isolation, a clean active Config per test, and an opt-in
telemetry reporter. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from mapfold.config import Config, _active_config
from mapfold.telemetry import MemoryReporter

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_mapfold_env(monkeypatch):
    """Clear MAPFOLD_* env vars so configuration starts from defaults."""
    for key in list(os.environ.keys()):
        if key.startswith("MAPFOLD_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def fresh_config():
    """Install a default Config for the duration of each test."""
    token = _active_config.set(Config())
    try:
        yield
    finally:
        _active_config.reset(token)


# =============================================================================
# Telemetry (opt-in)
# =============================================================================


@pytest.fixture
def telemetry(monkeypatch) -> MemoryReporter:
    """Enable telemetry and route it to a fresh in-memory reporter."""
    reporter = MemoryReporter()
    monkeypatch.setattr("mapfold.telemetry._TELEMETRY_ENABLED", True)
    monkeypatch.setattr("mapfold.telemetry._DEFAULT_REPORTER", reporter)
    return reporter


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_library_logging():
    """Keep library debug chatter out of test output unless a test opts in."""
    logging.getLogger("mapfold").setLevel(logging.WARNING)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "allow_dotenv: let python-dotenv read .env files in this test"
    )
