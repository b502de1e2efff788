"""Job status transitions driven by the external workflow runner."""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.config import ProvisioningConfig
from src.orchestrator.core.logging import get_logger
from src.orchestrator.models import (
    AgentInstance,
    InstanceStatus,
    JobStatus,
    ProvisioningJob,
)
from src.orchestrator.models.base import utc_now
from src.orchestrator.repositories import AgentInstanceRepository, ProvisioningJobRepository
from src.orchestrator.services.exceptions import InvalidTransition, NotFound
from src.orchestrator.services.state_machine import is_allowed_transition

logger = get_logger(__name__)


class JobStatusService:
    """Mutates job status and timestamps as provisioning progresses."""

    def __init__(
        self,
        job_repo: ProvisioningJobRepository,
        instance_repo: AgentInstanceRepository,
        session: AsyncSession,
        config: ProvisioningConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_repo = job_repo
        self.instance_repo = instance_repo
        self.session = session
        self.config = config
        self.clock = clock

    async def update_status(
        self,
        job_id: UUID,
        status: JobStatus,
        *,
        workflow_run_id: str | None = None,
        error: str | None = None,
        failed_step: str | None = None,
    ) -> ProvisioningJob:
        """Transition a job and commit.

        Args:
            job_id: Job to transition
            status: Requested status
            workflow_run_id: Written verbatim when supplied
            error: Written verbatim when supplied
            failed_step: Written verbatim when supplied

        Returns:
            The updated job

        Raises:
            NotFound: If the job does not exist
            InvalidTransition: If status is not reachable from the current status
        """
        try:
            job = await self.job_repo.get_by_id_for_update(job_id)
            if job is None:
                raise NotFound("ProvisioningJob", job_id)
            previous = job.status
            await self.apply_transition(
                job,
                status,
                workflow_run_id=workflow_run_id,
                error=error,
                failed_step=failed_step,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(job)
        logger.info(
            "provisioning_job_status_updated",
            job_id=str(job.id),
            agent_id=str(job.agent_id),
            from_status=previous,
            to_status=job.status,
            workflow_run_id=job.workflow_run_id,
            failed_step=job.failed_step,
        )
        return job

    async def claim(self, job_id: UUID, workflow_run_id: str) -> ProvisioningJob:
        """The runner takes ownership of a queued job."""
        return await self.update_status(
            job_id, JobStatus.PROVISIONING, workflow_run_id=workflow_run_id
        )

    async def fail(
        self, job_id: UUID, error: str, failed_step: str | None = None
    ) -> ProvisioningJob:
        """The runner reports a provisioning failure."""
        return await self.update_status(
            job_id, JobStatus.FAILED, error=error, failed_step=failed_step
        )

    async def apply_transition(
        self,
        job: ProvisioningJob,
        status: JobStatus,
        *,
        workflow_run_id: str | None = None,
        error: str | None = None,
        failed_step: str | None = None,
    ) -> None:
        """Apply a transition to a loaded job without committing.

        Callers own the transaction so the job write can share it with
        instance and agent writes.
        """
        current = job.status_enum
        if not is_allowed_transition(current, status):
            raise InvalidTransition(job.id, current.value, status.value)

        now = self.clock()
        job.status = status.value
        job.updated_at = now

        # claimed_at is first-claim only: a duplicate claim must not reset the timeout clock
        if status == JobStatus.PROVISIONING and job.claimed_at is None:
            job.claimed_at = now
        if status.is_terminal:
            job.completed_at = now

        if workflow_run_id is not None:
            job.workflow_run_id = workflow_run_id
        if error is not None:
            job.error = error
        if failed_step is not None:
            job.failed_step = failed_step

        if status == JobStatus.PROVISIONING:
            await self._start_pending_instance(job.agent_id, now)
        elif status == JobStatus.FAILED:
            await self.fail_in_progress_instance(job.agent_id, job.error, now)

    async def fail_in_progress_instance(
        self, agent_id: UUID, error: str | None, now: datetime
    ) -> AgentInstance | None:
        """Mark the agent's pending/provisioning instance failed (no commit)."""
        instance = await self.instance_repo.get_in_progress_for_agent(agent_id)
        if instance is None:
            return None
        instance.status = InstanceStatus.FAILED.value
        instance.error = error
        instance.updated_at = now
        return instance

    async def _start_pending_instance(self, agent_id: UUID, now: datetime) -> None:
        instance = await self.instance_repo.get_in_progress_for_agent(agent_id)
        if instance is not None and instance.status_enum == InstanceStatus.PENDING:
            instance.status = InstanceStatus.PROVISIONING.value
            instance.updated_at = now
