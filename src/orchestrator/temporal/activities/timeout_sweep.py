"""Activities for the periodic provisioning timeout sweep."""

from uuid import UUID

from temporalio import activity

from src.orchestrator.core.config import ProvisioningConfig, get_settings
from src.orchestrator.core.db import get_session
from src.orchestrator.models import JobStatus
from src.orchestrator.repositories import ProvisioningJobRepository
from src.orchestrator.services import ProvisioningOrchestrator


@activity.defn
async def list_provisioning_job_ids() -> list[str]:
    """List ids of jobs currently provisioning, oldest first.

    Read-only; safe to retry.
    """
    async with get_session() as session:
        repo = ProvisioningJobRepository(session)
        jobs = await repo.list_by_status(JobStatus.PROVISIONING)

    activity.logger.info(f"Found {len(jobs)} provisioning job(s) to check")
    return [str(job.id) for job in jobs]


@activity.defn
async def check_job_timeout(job_id: str) -> bool:
    """
    Fail the job if its runner has stopped sending heartbeats.

    Idempotent: the transition is conditional on the job still being
    provisioning, so a retried or duplicate check is a no-op.

    Args:
        job_id: Provisioning job UUID as string

    Returns:
        True if this call timed the job out
    """
    config = ProvisioningConfig.from_settings(get_settings())
    async with get_session() as session:
        orchestrator = ProvisioningOrchestrator(session, config)
        timed_out = await orchestrator.check_timeout(UUID(job_id))

    if timed_out:
        activity.logger.warning(f"Provisioning job {job_id} timed out")
    return timed_out
