"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Settings are read at import time by src.orchestrator.main; set required values first
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CALLBACK_SECRET", "test-callback-secret-0123456789abcdef")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Generator

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.orchestrator.core.config import ProvisioningConfig, get_settings
from src.orchestrator.core.logging import clear_request_context
from tests.helpers import FakeClock

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock injected into the provisioning services."""
    return FakeClock()


@pytest.fixture
def provisioning_config() -> ProvisioningConfig:
    """Production timing constants (60s heartbeat, 900s timeout, 3 retries)."""
    return ProvisioningConfig()


@pytest.fixture
def capturing_logger() -> Generator[CapturingLogger]:
    """Route structlog output into a CapturingLogger for assertions."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch) -> Generator[pytest.MonkeyPatch]:
    """Set env vars for a test and rebuild the cached Settings around it."""
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
