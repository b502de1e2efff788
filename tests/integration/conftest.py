"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite database file, created from the model
metadata (partial unique indexes included). A file rather than
:memory: lets several sessions write concurrently.
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

import src.orchestrator.models  # noqa: F401 - register tables on the metadata
from src.orchestrator.api.dependencies import get_db_session, get_provisioning_config
from src.orchestrator.core.config import ProvisioningConfig
from src.orchestrator.core.health import reset_health_cache
from src.orchestrator.main import create_app
from src.orchestrator.models import Agent
from src.orchestrator.services import ProvisioningOrchestrator
from tests.helpers import FakeClock, create_agent


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a fresh database for the test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'orchestrator.db'}",
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory matching the application's session settings."""
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    The session does NOT auto-commit. Services commit their own work; tests
    that insert rows directly must commit (helpers in tests.helpers do).
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def orchestrator(
    db_session: AsyncSession, provisioning_config: ProvisioningConfig, clock: FakeClock
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(db_session, provisioning_config, clock)


@pytest.fixture
def make_orchestrator(
    session_factory: async_sessionmaker[AsyncSession],
    provisioning_config: ProvisioningConfig,
    clock: FakeClock,
) -> Callable[[AsyncSession], ProvisioningOrchestrator]:
    """Build an orchestrator over a caller-owned session (for concurrency tests)."""

    def _make(session: AsyncSession) -> ProvisioningOrchestrator:
        return ProvisioningOrchestrator(session, provisioning_config, clock)

    return _make


@pytest.fixture
async def agent(db_session: AsyncSession) -> Agent:
    """A draft agent owned by a fresh user."""
    return await create_agent(db_session)


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    provisioning_config: ProvisioningConfig,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client against a fresh app bound to the test database."""
    reset_health_cache()
    app = create_app()

    async def _get_test_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    app.dependency_overrides[get_provisioning_config] = lambda: provisioning_config

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    reset_health_cache()
