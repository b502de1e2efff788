"""Completion: job -> running, instance upserted, agent -> active, in one transaction."""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.logging import get_logger
from src.orchestrator.models import (
    AgentInstance,
    AgentStatus,
    InstanceStatus,
    JobStatus,
)
from src.orchestrator.models.base import utc_now
from src.orchestrator.repositories import (
    AgentInstanceRepository,
    AgentRepository,
    ProvisioningJobRepository,
)
from src.orchestrator.schemas.provisioning import VmMetadata
from src.orchestrator.services.exceptions import NotFound
from src.orchestrator.services.job_status_service import JobStatusService

logger = get_logger(__name__)


class InstanceReconciler:
    """Records a successful provisioning run."""

    def __init__(
        self,
        job_repo: ProvisioningJobRepository,
        instance_repo: AgentInstanceRepository,
        agent_repo: AgentRepository,
        status_service: JobStatusService,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_repo = job_repo
        self.instance_repo = instance_repo
        self.agent_repo = agent_repo
        self.status_service = status_service
        self.session = session
        self.clock = clock

    async def complete_with_metadata(self, job_id: UUID, vm: VmMetadata) -> AgentInstance:
        """Mark the job running and reconcile the agent's instance and status.

        The agent's active instance is updated in place, or created when
        there is none, so repeated completions never duplicate it. Completing
        a job that is already running re-applies the reconciliation without
        touching the job row.

        Raises:
            NotFound: If the job or its agent does not exist
            InvalidTransition: If the job is queued or failed
        """
        try:
            job = await self.job_repo.get_by_id_for_update(job_id)
            if job is None:
                raise NotFound("ProvisioningJob", job_id)

            already_running = job.status_enum == JobStatus.RUNNING
            if not already_running:
                await self.status_service.apply_transition(job, JobStatus.RUNNING)

            now = self.clock()
            instance = await self.instance_repo.get_active_for_agent(job.agent_id)
            created = instance is None
            if instance is None:
                instance = AgentInstance(agent_id=job.agent_id, created_at=now)
                self.instance_repo.add(instance)

            if not already_running or instance.started_at is None:
                instance.started_at = now
            instance.status = InstanceStatus.RUNNING.value
            instance.server_id = vm.server_id
            instance.server_ip = vm.server_ip
            instance.tailscale_ip = vm.tailscale_ip
            instance.region = job.region
            instance.current_step = None
            instance.error = None
            instance.updated_at = now

            agent = await self.agent_repo.get_by_id(job.agent_id)
            if agent is None:
                raise NotFound("Agent", job.agent_id)
            agent.status = AgentStatus.ACTIVE.value
            agent.updated_at = now

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(instance)
        logger.info(
            "agent_instance_reconciled",
            job_id=str(job.id),
            agent_id=str(job.agent_id),
            instance_id=str(instance.id),
            server_id=vm.server_id,
            created=created,
            already_running=already_running,
        )
        return instance
