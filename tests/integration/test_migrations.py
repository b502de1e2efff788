"""Tests that the Alembic migrations build the same schema as the models."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from alembic import command
from alembic.config import Config
from src.orchestrator.core.db import run_migrations_async

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def migrated_db(tmp_path: Path, settings_env: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "migrated.db"
    settings_env.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    settings_env.chdir(REPO_ROOT)
    return db_path


async def test_upgrade_creates_tables_and_partial_indexes(migrated_db: Path):
    await run_migrations_async()

    engine = create_engine(f"sqlite:///{migrated_db}")
    try:
        inspector = inspect(engine)
        assert {"agents", "agent_instances", "provisioning_jobs"} <= set(
            inspector.get_table_names()
        )
        job_indexes = {ix["name"]: ix for ix in inspector.get_indexes("provisioning_jobs")}
        assert job_indexes["uq_provisioning_jobs_user_in_flight"]["unique"]
        instance_indexes = {ix["name"]: ix for ix in inspector.get_indexes("agent_instances")}
        assert instance_indexes["uq_agent_instances_agent_active"]["unique"]
    finally:
        engine.dispose()


async def test_in_flight_index_enforced_by_migrated_schema(migrated_db: Path):
    await run_migrations_async()

    engine = create_engine(f"sqlite:///{migrated_db}")
    insert_job = text(
        "INSERT INTO provisioning_jobs "
        "(id, agent_id, user_id, stripe_event_id, region, status, retry_count, "
        "created_at, updated_at) "
        "VALUES (:id, :agent_id, :user_id, :event, 'us-east', :status, 0, "
        "'2026-01-15 10:00:00', '2026-01-15 10:00:00')"
    )
    agent = "a" * 32
    user = "b" * 32
    try:
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO agents (id, user_id, name, status, created_at, updated_at) "
                    "VALUES (:id, :user_id, 'agent', 'draft', "
                    "'2026-01-15 10:00:00', '2026-01-15 10:00:00')"
                ),
                {"id": agent, "user_id": user},
            )
            for n, status in enumerate(["failed", "running", "queued"]):
                conn.execute(
                    insert_job,
                    {
                        "id": f"{n:032d}",
                        "agent_id": agent,
                        "user_id": user,
                        "event": f"evt_{n}",
                        "status": status,
                    },
                )

        with pytest.raises(IntegrityError), engine.begin() as conn:
            conn.execute(
                insert_job,
                {
                    "id": "9" * 32,
                    "agent_id": agent,
                    "user_id": user,
                    "event": "evt_9",
                    "status": "provisioning",
                },
            )
    finally:
        engine.dispose()


async def test_downgrade_removes_tables(migrated_db: Path):
    await run_migrations_async()
    command.downgrade(Config("alembic.ini"), "base")

    engine = create_engine(f"sqlite:///{migrated_db}")
    try:
        tables = set(inspect(engine).get_table_names())
        assert not tables & {"agents", "agent_instances", "provisioning_jobs"}
    finally:
        engine.dispose()

