"""Single entry point over the provisioning services.

Web handlers, the callback dispatcher and Temporal activities all go
through ProvisioningOrchestrator so they share one session and one
ProvisioningConfig per unit of work.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.config import ProvisioningConfig
from src.orchestrator.models import AgentInstance, JobStatus, ProvisioningJob
from src.orchestrator.models.base import utc_now
from src.orchestrator.repositories import (
    AgentInstanceRepository,
    AgentRepository,
    ProvisioningJobRepository,
)
from src.orchestrator.schemas.provisioning import ProvisioningStep, VmMetadata
from src.orchestrator.services.heartbeat_monitor import HeartbeatMonitor, SweepResult
from src.orchestrator.services.instance_reconciler import InstanceReconciler
from src.orchestrator.services.job_status_service import JobStatusService
from src.orchestrator.services.progress import build_provisioning_steps
from src.orchestrator.services.provisioning_queue_service import ProvisioningQueueService
from src.orchestrator.services.step_tracker import StepTracker


class ProvisioningOrchestrator:
    def __init__(
        self,
        session: AsyncSession,
        config: ProvisioningConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.config = config

        job_repo = ProvisioningJobRepository(session)
        instance_repo = AgentInstanceRepository(session)
        agent_repo = AgentRepository(session)

        self.status = JobStatusService(job_repo, instance_repo, session, config, clock)
        self.queue = ProvisioningQueueService(
            job_repo, instance_repo, agent_repo, session, config, clock
        )
        self.monitor = HeartbeatMonitor(job_repo, self.status, session, config, clock)
        self.steps = StepTracker(job_repo, instance_repo, session, clock)
        self.reconciler = InstanceReconciler(
            job_repo, instance_repo, agent_repo, self.status, session, clock
        )

    # Billing handler

    async def enqueue(
        self,
        agent_id: UUID,
        user_id: UUID,
        stripe_event_id: str,
        region: str | None = None,
    ) -> ProvisioningJob:
        return await self.queue.enqueue(agent_id, user_id, stripe_event_id, region)

    async def find_job_by_external_event_id(self, stripe_event_id: str) -> ProvisioningJob | None:
        return await self.queue.find_job_by_external_event_id(stripe_event_id)

    # Dashboard

    async def find_latest_job_for_agent(self, agent_id: UUID) -> ProvisioningJob | None:
        return await self.queue.find_latest_job_for_agent(agent_id)

    async def find_latest_instance_for_agent(self, agent_id: UUID) -> AgentInstance | None:
        return await self.queue.find_latest_instance_for_agent(agent_id)

    async def get_job(self, job_id: UUID) -> ProvisioningJob:
        return await self.queue.get_job(job_id)

    async def list_jobs_for_agent(
        self, agent_id: UUID, cursor: str | None = None, limit: int = 20
    ) -> tuple[list[ProvisioningJob], str | None, bool]:
        return await self.queue.list_jobs_for_agent(agent_id, cursor, limit)

    async def request_provisioning(
        self,
        agent_id: UUID,
        user_id: UUID | None = None,
        region: str | None = None,
    ) -> tuple[AgentInstance, ProvisioningJob]:
        return await self.queue.request_provisioning(agent_id, user_id, region)

    async def retry(self, job_id: UUID) -> ProvisioningJob:
        return await self.queue.retry(job_id)

    async def get_agent_provisioning(
        self, agent_id: UUID
    ) -> tuple[ProvisioningJob | None, AgentInstance | None, list[ProvisioningStep] | None]:
        """Latest job, latest instance and the checklist derived from the instance."""
        job = await self.find_latest_job_for_agent(agent_id)
        instance = await self.find_latest_instance_for_agent(agent_id)
        steps = (
            build_provisioning_steps(instance.status, instance.current_step)
            if instance is not None
            else None
        )
        return job, instance, steps

    # Workflow runner callbacks

    async def update_status(
        self,
        job_id: UUID,
        status: JobStatus,
        *,
        workflow_run_id: str | None = None,
        error: str | None = None,
        failed_step: str | None = None,
    ) -> ProvisioningJob:
        return await self.status.update_status(
            job_id,
            status,
            workflow_run_id=workflow_run_id,
            error=error,
            failed_step=failed_step,
        )

    async def claim(self, job_id: UUID, workflow_run_id: str) -> ProvisioningJob:
        return await self.status.claim(job_id, workflow_run_id)

    async def record_heartbeat(self, job_id: UUID) -> bool:
        return await self.monitor.record_heartbeat(job_id)

    async def record_step(
        self, job_id: UUID, step: str, metadata: dict[str, Any] | None = None
    ) -> AgentInstance | None:
        return await self.steps.record_step(job_id, step, metadata)

    async def fail(
        self, job_id: UUID, error: str, failed_step: str | None = None
    ) -> ProvisioningJob:
        return await self.status.fail(job_id, error, failed_step)

    async def complete_with_metadata(self, job_id: UUID, vm: VmMetadata) -> AgentInstance:
        return await self.reconciler.complete_with_metadata(job_id, vm)

    # Periodic sweep

    async def check_timeout(self, job_id: UUID) -> bool:
        return await self.monitor.check_timeout(job_id)

    async def sweep_timeouts(self) -> SweepResult:
        return await self.monitor.sweep_timeouts()
