"""Test helper functions for common data creation patterns."""

import json
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.security import compute_signature
from src.orchestrator.models import Agent, AgentInstance, ProvisioningJob
from tests.factories import AgentFactory, AgentInstanceFactory, ProvisioningJobFactory


class FakeClock:
    """Callable clock returning a fixed, manually advanced naive-UTC time."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 10, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


async def create_agent(session: AsyncSession, **kwargs: Any) -> Agent:
    """Create and commit an agent."""
    agent = AgentFactory.build(**kwargs)
    session.add(agent)
    await session.commit()
    await session.refresh(agent)
    return agent


async def create_job(session: AsyncSession, agent: Agent, **kwargs: Any) -> ProvisioningJob:
    """Create and commit a job for an agent (owned by the agent's user by default)."""
    kwargs.setdefault("user_id", agent.user_id)
    job = ProvisioningJobFactory.build(agent_id=agent.id, **kwargs)
    session.add(job)
    await session.commit()
    await session.refresh(job)
    return job


async def create_instance(session: AsyncSession, agent: Agent, **kwargs: Any) -> AgentInstance:
    """Create and commit an instance for an agent."""
    instance = AgentInstanceFactory.build(agent_id=agent.id, **kwargs)
    session.add(instance)
    await session.commit()
    await session.refresh(instance)
    return instance


def signed_callback(payload: dict[str, Any], secret: str) -> tuple[bytes, dict[str, str]]:
    """Serialize a callback payload and sign it the way the workflow runner does."""
    body = json.dumps(payload, default=str).encode()
    headers = {
        "Content-Type": "application/json",
        "X-Signature": compute_signature(body, secret),
    }
    return body, headers
