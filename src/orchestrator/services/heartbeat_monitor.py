"""Liveness tracking and stalled-job detection."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.orchestrator.core.config import ProvisioningConfig
from src.orchestrator.core.logging import get_logger
from src.orchestrator.models import JobStatus
from src.orchestrator.models.base import utc_now
from src.orchestrator.repositories import ProvisioningJobRepository
from src.orchestrator.services.exceptions import NotFound
from src.orchestrator.services.job_status_service import JobStatusService

logger = get_logger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    timed_out: list[UUID] = field(default_factory=list)


def timeout_error_message(elapsed_seconds: int, timeout_seconds: int) -> str:
    return f"Timeout: no heartbeat for {elapsed_seconds}s (threshold: {timeout_seconds}s)"


class HeartbeatMonitor:
    """Records heartbeats and fails jobs whose runner went silent."""

    def __init__(
        self,
        job_repo: ProvisioningJobRepository,
        status_service: JobStatusService,
        session: AsyncSession,
        config: ProvisioningConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_repo = job_repo
        self.status_service = status_service
        self.session = session
        self.config = config
        self.clock = clock

    async def record_heartbeat(self, job_id: UUID) -> bool:
        """Record a liveness ping from the runner.

        Only provisioning jobs are touched; a late heartbeat for a job that
        already completed or failed is a no-op.

        Returns:
            True if last_heartbeat_at was updated

        Raises:
            NotFound: If the job does not exist
        """
        now = self.clock()
        try:
            updated = await self.job_repo.touch_heartbeat(job_id, now)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if updated:
            logger.debug("heartbeat_recorded", job_id=str(job_id))
            return True

        job = await self.job_repo.get_by_id(job_id)
        if job is None:
            raise NotFound("ProvisioningJob", job_id)
        logger.info("heartbeat_ignored", job_id=str(job_id), status=job.status)
        return False

    async def check_timeout(self, job_id: UUID) -> bool:
        """Fail the job if it is provisioning and its runner has gone silent.

        The reference time is the last heartbeat, else the claim time, else
        the last update. Safe to call repeatedly: once the job has failed the
        status guard short-circuits.

        Returns:
            True if this call timed the job out
        """
        job = await self.job_repo.get_by_id(job_id, refresh=True)
        if job is None or job.status_enum != JobStatus.PROVISIONING:
            return False

        now = self.clock()
        reference = job.last_heartbeat_at or job.claimed_at or job.updated_at
        elapsed = now - reference
        if elapsed <= timedelta(seconds=self.config.job_timeout_seconds):
            return False

        error = timeout_error_message(int(elapsed.total_seconds()), self.config.job_timeout_seconds)
        try:
            # Conditional on status so a completion landing concurrently wins
            updated = await self.job_repo.mark_timed_out(job.id, error, now)
            if updated:
                await self.status_service.fail_in_progress_instance(job.agent_id, error, now)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if not updated:
            return False

        logger.warning(
            "provisioning_job_timed_out",
            job_id=str(job.id),
            agent_id=str(job.agent_id),
            elapsed_seconds=int(elapsed.total_seconds()),
            timeout_seconds=self.config.job_timeout_seconds,
        )
        return True

    async def sweep_timeouts(self) -> SweepResult:
        """Check every provisioning job for a timeout."""
        result = SweepResult()
        for job in await self.job_repo.list_by_status(JobStatus.PROVISIONING):
            result.checked += 1
            if await self.check_timeout(job.id):
                result.timed_out.append(job.id)

        logger.info(
            "provisioning_timeout_sweep_completed",
            checked=result.checked,
            timed_out=len(result.timed_out),
        )
        return result
