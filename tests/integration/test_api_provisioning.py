"""Integration tests for the provisioning and agent HTTP endpoints."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.models import Agent, InstanceStatus, JobStatus
from tests.factories import ProvisioningJobFactory, utc_now
from tests.helpers import create_agent, create_instance

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def enqueue_body(agent: Agent, event_id: str = "evt_1", **extra) -> dict:
    return {
        "agent_id": str(agent.id),
        "user_id": str(agent.user_id),
        "stripe_event_id": event_id,
        **extra,
    }


class TestEnqueueEndpoint:
    async def test_enqueue_returns_created_job(self, client: AsyncClient, agent: Agent):
        response = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "queued"
        assert data["agent_id"] == str(agent.id)
        assert data["region"] == "us-east"
        assert data["retry_count"] == 0

    async def test_redelivered_event_returns_existing_job(
        self, client: AsyncClient, agent: Agent
    ):
        first = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))
        second = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

    async def test_conflict_returns_409_with_request_id(
        self, client: AsyncClient, db_session: AsyncSession, agent: Agent
    ):
        db_session.add(
            ProvisioningJobFactory.provisioning(agent_id=agent.id, user_id=agent.user_id)
        )
        await db_session.commit()

        response = await client.post(
            "/api/v1/provisioning/jobs", json=enqueue_body(agent, "evt_2")
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "ConcurrencyConflict"
        assert "already in progress" in data["detail"]
        assert data["request_id"] == response.headers["X-Request-ID"]

    async def test_unknown_agent_returns_404(self, client: AsyncClient):
        body = {"agent_id": str(uuid4()), "user_id": str(uuid4()), "stripe_event_id": "evt_x"}

        response = await client.post("/api/v1/provisioning/jobs", json=body)

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_invalid_body_returns_422(self, client: AsyncClient, agent: Agent):
        response = await client.post(
            "/api/v1/provisioning/jobs", json=enqueue_body(agent, event_id="")
        )
        assert response.status_code == 422


class TestJobEndpoints:
    async def test_get_job(self, client: AsyncClient, agent: Agent):
        created = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))
        job_id = created.json()["id"]

        response = await client.get(f"/api/v1/provisioning/jobs/{job_id}")

        assert response.status_code == 200
        assert response.json()["id"] == job_id

    async def test_get_unknown_job_returns_404(self, client: AsyncClient):
        response = await client.get(f"/api/v1/provisioning/jobs/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_retry_failed_job(
        self, client: AsyncClient, db_session: AsyncSession, agent: Agent
    ):
        failed = ProvisioningJobFactory.failed(
            agent_id=agent.id, user_id=agent.user_id, stripe_event_id="evt_9"
        )
        db_session.add(failed)
        await db_session.commit()

        response = await client.post(f"/api/v1/provisioning/jobs/{failed.id}/retry")

        assert response.status_code == 201
        data = response.json()
        assert data["retry_count"] == 1
        assert data["stripe_event_id"] == "evt_9:retry-1"
        assert data["status"] == "queued"

    async def test_retry_queued_job_returns_409(self, client: AsyncClient, agent: Agent):
        created = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))

        response = await client.post(f"/api/v1/provisioning/jobs/{created.json()['id']}/retry")

        assert response.status_code == 409
        assert response.json()["error"] == "JobNotRetryable"

    async def test_check_timeout_on_fresh_job(self, client: AsyncClient, agent: Agent):
        created = await client.post("/api/v1/provisioning/jobs", json=enqueue_body(agent))
        job_id = created.json()["id"]

        response = await client.post(f"/api/v1/provisioning/jobs/{job_id}/check-timeout")

        assert response.status_code == 200
        assert response.json() == {"job_id": job_id, "timed_out": False}

    async def test_sweep(self, client: AsyncClient, db_session: AsyncSession, agent: Agent):
        stalled = ProvisioningJobFactory.provisioning(
            agent_id=agent.id,
            user_id=agent.user_id,
            claimed_at=utc_now() - timedelta(hours=1),
        )
        db_session.add(stalled)
        await db_session.commit()

        response = await client.post("/api/v1/provisioning/sweep")

        assert response.status_code == 200
        assert response.json() == {"checked": 1, "timed_out": [str(stalled.id)]}


class TestInternalKey:
    async def test_key_required_when_configured(
        self, client: AsyncClient, settings_env: pytest.MonkeyPatch, agent: Agent
    ):
        settings_env.setenv("INTERNAL_API_KEY", "internal-key-0123456789")

        missing = await client.get(f"/api/v1/agents/{agent.id}/provisioning")
        wrong = await client.get(
            f"/api/v1/agents/{agent.id}/provisioning", headers={"X-Internal-Key": "nope"}
        )
        ok = await client.get(
            f"/api/v1/agents/{agent.id}/provisioning",
            headers={"X-Internal-Key": "internal-key-0123456789"},
        )

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert ok.status_code == 200

    async def test_open_when_not_configured(self, client: AsyncClient, agent: Agent):
        response = await client.get(f"/api/v1/agents/{agent.id}/provisioning")
        assert response.status_code == 200


class TestAgentEndpoints:
    async def test_provision_agent(self, client: AsyncClient, agent: Agent):
        response = await client.post(f"/api/v1/agents/{agent.id}/provision")

        assert response.status_code == 202
        data = response.json()
        assert data["instance"]["status"] == InstanceStatus.PENDING.value
        assert data["job"]["status"] == JobStatus.QUEUED.value
        assert data["job"]["user_id"] == str(agent.user_id)
        assert [s["status"] for s in data["steps"]][:2] == ["active", "pending"]

    async def test_provision_agent_with_region(self, client: AsyncClient, agent: Agent):
        response = await client.post(
            f"/api/v1/agents/{agent.id}/provision", json={"region": "eu-central"}
        )

        assert response.status_code == 202
        assert response.json()["instance"]["region"] == "eu-central"

    async def test_provision_agent_with_running_instance_returns_409(
        self, client: AsyncClient, db_session: AsyncSession, agent: Agent
    ):
        await create_instance(db_session, agent, status=InstanceStatus.RUNNING.value)

        response = await client.post(f"/api/v1/agents/{agent.id}/provision")

        assert response.status_code == 409
        assert response.json()["error"] == "AgentInstanceConflict"

    async def test_provision_unknown_agent_returns_404(self, client: AsyncClient):
        response = await client.post(f"/api/v1/agents/{uuid4()}/provision")
        assert response.status_code == 404

    async def test_provisioning_view_for_new_agent(self, client: AsyncClient, agent: Agent):
        response = await client.get(f"/api/v1/agents/{agent.id}/provisioning")

        assert response.status_code == 200
        assert response.json() == {"job": None, "instance": None, "steps": None}

    async def test_job_history(self, client: AsyncClient, db_session: AsyncSession):
        agent = await create_agent(db_session)
        for n in range(3):
            db_session.add(
                ProvisioningJobFactory.failed(
                    agent_id=agent.id,
                    user_id=agent.user_id,
                    stripe_event_id=f"evt_{n}",
                    created_at=utc_now() - timedelta(minutes=n),
                )
            )
        await db_session.commit()

        first = await client.get(f"/api/v1/agents/{agent.id}/provisioning/jobs?limit=2")
        assert first.status_code == 200
        page = first.json()
        assert len(page["items"]) == 2
        assert page["has_more"] is True

        second = await client.get(
            f"/api/v1/agents/{agent.id}/provisioning/jobs",
            params={"limit": 2, "cursor": page["next_cursor"]},
        )
        assert len(second.json()["items"]) == 1
        assert second.json()["has_more"] is False

    async def test_job_history_limit_bounds(self, client: AsyncClient, agent: Agent):
        response = await client.get(f"/api/v1/agents/{agent.id}/provisioning/jobs?limit=0")
        assert response.status_code == 422
