"""Provisioning queue: concurrency guard, enqueue, retry and lookups."""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
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
from src.orchestrator.repositories import (
    AgentInstanceRepository,
    AgentRepository,
    ProvisioningJobRepository,
)
from src.orchestrator.services.exceptions import (
    AgentInstanceConflict,
    ConcurrencyConflict,
    JobNotRetryable,
    NotFound,
    RetryLimitExceeded,
)

logger = get_logger(__name__)

RETRY_KEY_SEPARATOR = ":retry-"
IN_FLIGHT_INDEX = "uq_provisioning_jobs_user_in_flight"


def retry_event_id(stripe_event_id: str, attempt: int) -> str:
    """Idempotency key for the nth retry of the job created for an event."""
    base = stripe_event_id.split(RETRY_KEY_SEPARATOR)[0]
    return f"{base}{RETRY_KEY_SEPARATOR}{attempt}"


class ProvisioningQueueService:
    """Creates provisioning jobs while holding the one-in-flight-job-per-user invariant."""

    def __init__(
        self,
        job_repo: ProvisioningJobRepository,
        instance_repo: AgentInstanceRepository,
        agent_repo: AgentRepository,
        session: AsyncSession,
        config: ProvisioningConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_repo = job_repo
        self.instance_repo = instance_repo
        self.agent_repo = agent_repo
        self.session = session
        self.config = config
        self.clock = clock

    async def enqueue(
        self,
        agent_id: UUID,
        user_id: UUID,
        stripe_event_id: str,
        region: str | None = None,
    ) -> ProvisioningJob:
        """Create a queued job for an agent.

        Does not deduplicate by stripe_event_id; callers check
        find_job_by_external_event_id first.

        Raises:
            NotFound: If the agent does not exist
            ConcurrencyConflict: If the user already has a queued or provisioning job
        """
        if await self.agent_repo.get_by_id(agent_id) is None:
            raise NotFound("Agent", agent_id)

        try:
            job = await self._stage_job(agent_id, user_id, stripe_event_id, region)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(job)
        logger.info(
            "provisioning_job_enqueued",
            job_id=str(job.id),
            agent_id=str(agent_id),
            user_id=str(user_id),
            stripe_event_id=stripe_event_id,
            region=job.region,
            retry_count=job.retry_count,
        )
        return job

    async def find_job_by_external_event_id(self, stripe_event_id: str) -> ProvisioningJob | None:
        """Idempotency lookup for a billing event."""
        return await self.job_repo.get_by_stripe_event_id(stripe_event_id)

    async def find_latest_job_for_agent(self, agent_id: UUID) -> ProvisioningJob | None:
        return await self.job_repo.get_latest_for_agent(agent_id)

    async def get_job(self, job_id: UUID) -> ProvisioningJob:
        job = await self.job_repo.get_by_id(job_id)
        if job is None:
            raise NotFound("ProvisioningJob", job_id)
        return job

    async def list_jobs_for_agent(
        self, agent_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[ProvisioningJob], str | None, bool]:
        """List an agent's jobs, newest first, with cursor-based pagination.

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        return await self.job_repo.list_for_agent_paginated(agent_id, cursor, limit)

    async def find_latest_instance_for_agent(self, agent_id: UUID) -> AgentInstance | None:
        return await self.instance_repo.get_latest_for_agent(agent_id)

    async def retry(self, job_id: UUID) -> ProvisioningJob:
        """Re-attempt a failed job with a fresh job row.

        The new job copies agent, user and region, carries retry_count + 1 and
        a derived idempotency key, so retrying the same failed job twice
        returns the job created by the first retry.

        Raises:
            NotFound: If the job does not exist
            JobNotRetryable: If the job is not failed
            RetryLimitExceeded: If the job has used up max_retries
            ConcurrencyConflict: If the user already has a queued or provisioning job
        """
        failed = await self.job_repo.get_by_id(job_id)
        if failed is None:
            raise NotFound("ProvisioningJob", job_id)
        if failed.status_enum != JobStatus.FAILED:
            raise JobNotRetryable(failed.id, failed.status)
        if failed.retry_count >= self.config.max_retries:
            raise RetryLimitExceeded(failed.id, failed.retry_count, self.config.max_retries)

        attempt = failed.retry_count + 1
        event_id = retry_event_id(failed.stripe_event_id, attempt)
        existing = await self.job_repo.get_by_stripe_event_id(event_id)
        if existing is not None:
            return existing

        try:
            job = await self._stage_job(
                failed.agent_id,
                failed.user_id,
                event_id,
                failed.region,
                retry_count=attempt,
            )
            if await self.instance_repo.get_active_for_agent(failed.agent_id) is None:
                await self._stage_pending_instance(failed.agent_id, failed.region)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(job)
        logger.info(
            "provisioning_job_retried",
            job_id=str(job.id),
            previous_job_id=str(failed.id),
            agent_id=str(job.agent_id),
            retry_count=job.retry_count,
            max_retries=self.config.max_retries,
        )
        return job

    async def request_provisioning(
        self,
        agent_id: UUID,
        user_id: UUID | None = None,
        region: str | None = None,
    ) -> tuple[AgentInstance, ProvisioningJob]:
        """Deploy an agent from the dashboard.

        Creates a pending instance and a queued job in one transaction.

        Args:
            agent_id: Agent to deploy
            user_id: Owner for the concurrency guard; defaults to the agent's owner
            region: Deployment region; defaults to the configured default

        Raises:
            NotFound: If the agent does not exist
            AgentInstanceConflict: If the agent already has an active instance
            ConcurrencyConflict: If the user already has a queued or provisioning job
        """
        agent = await self.agent_repo.get_by_id(agent_id)
        if agent is None:
            raise NotFound("Agent", agent_id)

        active = await self.instance_repo.get_active_for_agent(agent_id)
        if active is not None:
            raise AgentInstanceConflict(agent_id, active.id)

        effective_user_id = user_id or agent.user_id
        effective_region = region or self.config.default_region

        try:
            instance = await self._stage_pending_instance(agent_id, effective_region)
            job = await self._stage_job(
                agent_id, effective_user_id, f"manual-{instance.id}", effective_region
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(instance)
        await self.session.refresh(job)
        logger.info(
            "provisioning_requested",
            job_id=str(job.id),
            instance_id=str(instance.id),
            agent_id=str(agent_id),
            user_id=str(effective_user_id),
            region=effective_region,
        )
        return instance, job

    async def _stage_job(
        self,
        agent_id: UUID,
        user_id: UUID,
        stripe_event_id: str,
        region: str | None,
        retry_count: int = 0,
    ) -> ProvisioningJob:
        """Insert a queued job inside the caller's transaction (no commit)."""
        blocking = await self.job_repo.get_in_flight_for_user(user_id)
        if blocking is not None:
            raise ConcurrencyConflict(user_id, blocking.id)

        now = self.clock()
        job = ProvisioningJob(
            agent_id=agent_id,
            user_id=user_id,
            stripe_event_id=stripe_event_id,
            region=region or self.config.default_region,
            status=JobStatus.QUEUED.value,
            retry_count=retry_count,
            created_at=now,
            updated_at=now,
        )
        # Partial unique index on user_id handles races past the check above
        try:
            self.job_repo.add(job)
            await self.session.flush()
        except IntegrityError as e:
            # Postgres names the index, SQLite names the column
            message = str(e)
            if IN_FLIGHT_INDEX in message or "provisioning_jobs.user_id" in message:
                raise ConcurrencyConflict(user_id) from e
            raise
        return job

    async def _stage_pending_instance(self, agent_id: UUID, region: str) -> AgentInstance:
        now = self.clock()
        instance = AgentInstance(
            agent_id=agent_id,
            status=InstanceStatus.PENDING.value,
            region=region,
            created_at=now,
            updated_at=now,
        )
        try:
            self.instance_repo.add(instance)
            await self.session.flush()
        except IntegrityError as e:
            raise AgentInstanceConflict(agent_id, instance.id) from e
        return instance
