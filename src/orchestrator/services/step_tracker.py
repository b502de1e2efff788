"""Progress labels reported by the runner, surfaced on the agent instance."""

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.logging import get_logger
from src.orchestrator.models import AgentInstance
from src.orchestrator.models.base import utc_now
from src.orchestrator.repositories import AgentInstanceRepository, ProvisioningJobRepository
from src.orchestrator.services.exceptions import NotFound

logger = get_logger(__name__)


class StepTracker:
    def __init__(
        self,
        job_repo: ProvisioningJobRepository,
        instance_repo: AgentInstanceRepository,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_repo = job_repo
        self.instance_repo = instance_repo
        self.session = session
        self.clock = clock

    async def record_step(
        self, job_id: UUID, step: str, metadata: dict[str, Any] | None = None
    ) -> AgentInstance | None:
        """Write the step label onto the agent's in-progress instance.

        If the agent has no pending or provisioning instance yet this is a
        logged no-op.

        Returns:
            The updated instance, or None when there was nothing to update

        Raises:
            NotFound: If the job does not exist
        """
        job = await self.job_repo.get_by_id(job_id)
        if job is None:
            raise NotFound("ProvisioningJob", job_id)

        try:
            instance = await self.instance_repo.get_in_progress_for_agent(job.agent_id)
            if instance is None:
                logger.info(
                    "provisioning_step_skipped",
                    job_id=str(job_id),
                    agent_id=str(job.agent_id),
                    step=step,
                    reason="no_in_progress_instance",
                )
                return None

            instance.current_step = step
            instance.updated_at = self.clock()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "provisioning_step_recorded",
            job_id=str(job_id),
            agent_id=str(job.agent_id),
            instance_id=str(instance.id),
            step=step,
            metadata=metadata or {},
        )
        return instance
