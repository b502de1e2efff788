"""Repositories for Agent and AgentInstance entities."""

from uuid import UUID

from sqlmodel import select

from src.orchestrator.models import (
    ACTIVE_INSTANCE_STATUSES,
    IN_PROGRESS_INSTANCE_STATUSES,
    Agent,
    AgentInstance,
)
from src.orchestrator.repositories.base import BaseRepository


class AgentRepository(BaseRepository[Agent]):
    """Repository for Agent entity."""

    model = Agent


class AgentInstanceRepository(BaseRepository[AgentInstance]):
    """Repository for AgentInstance entity."""

    model = AgentInstance

    async def get_active_for_agent(self, agent_id: UUID) -> AgentInstance | None:
        """Get the agent's pending, provisioning or running instance.

        At most one exists (enforced by a partial unique index).
        """
        result = await self.session.execute(
            select(AgentInstance)
            .where(
                AgentInstance.agent_id == agent_id,
                AgentInstance.status.in_(  # type: ignore[attr-defined]
                    [s.value for s in ACTIVE_INSTANCE_STATUSES]
                ),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_in_progress_for_agent(self, agent_id: UUID) -> AgentInstance | None:
        """Most recent pending or provisioning instance for an agent."""
        result = await self.session.execute(
            select(AgentInstance)
            .where(
                AgentInstance.agent_id == agent_id,
                AgentInstance.status.in_(  # type: ignore[attr-defined]
                    [s.value for s in IN_PROGRESS_INSTANCE_STATUSES]
                ),
            )
            .order_by(AgentInstance.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_latest_for_agent(self, agent_id: UUID) -> AgentInstance | None:
        """Most recent instance for an agent, any status."""
        result = await self.session.execute(
            select(AgentInstance)
            .where(AgentInstance.agent_id == agent_id)
            .order_by(AgentInstance.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()
