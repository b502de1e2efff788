"""Repository for ProvisioningJob entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select

from src.orchestrator.models import IN_FLIGHT_JOB_STATUSES, JobStatus, ProvisioningJob
from src.orchestrator.repositories.base import BaseRepository


class ProvisioningJobRepository(BaseRepository[ProvisioningJob]):
    """Repository for ProvisioningJob entity."""

    model = ProvisioningJob

    async def get_by_stripe_event_id(self, stripe_event_id: str) -> ProvisioningJob | None:
        """Get the job created for a billing event (idempotency lookup)."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(ProvisioningJob.stripe_event_id == stripe_event_id)
            .order_by(ProvisioningJob.created_at.asc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_latest_for_agent(self, agent_id: UUID) -> ProvisioningJob | None:
        """Most recent job for an agent, any status."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(ProvisioningJob.agent_id == agent_id)
            .order_by(ProvisioningJob.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_in_flight_for_user(self, user_id: UUID) -> ProvisioningJob | None:
        """Get the user's queued or provisioning job, if any."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(
                ProvisioningJob.user_id == user_id,
                ProvisioningJob.status.in_(  # type: ignore[attr-defined]
                    [s.value for s in IN_FLIGHT_JOB_STATUSES]
                ),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_by_status(self, status: JobStatus) -> list[ProvisioningJob]:
        """List jobs in a status, oldest first."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(ProvisioningJob.status == status.value)
            .order_by(ProvisioningJob.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_for_agent_paginated(
        self, agent_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[ProvisioningJob], str | None, bool]:
        """List an agent's jobs, newest first."""
        query = select(ProvisioningJob).where(ProvisioningJob.agent_id == agent_id)
        return await self.paginate(query, cursor, limit, ProvisioningJob.created_at)

    async def touch_heartbeat(self, job_id: UUID, now: datetime) -> int:
        """Set last_heartbeat_at, only while the job is provisioning.

        Returns:
            Number of rows updated (0 or 1)
        """
        result = await self.session.execute(
            update(ProvisioningJob)
            .where(
                ProvisioningJob.id == job_id,  # type: ignore[arg-type]
                ProvisioningJob.status == JobStatus.PROVISIONING.value,  # type: ignore[arg-type]
            )
            .values(last_heartbeat_at=now, updated_at=now)
        )
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def mark_timed_out(self, job_id: UUID, error: str, now: datetime) -> int:
        """Fail a job, only if it is still provisioning.

        The status predicate makes the transition race-free against a
        completion or failure callback landing at the same time.

        Returns:
            Number of rows updated (0 or 1)
        """
        result = await self.session.execute(
            update(ProvisioningJob)
            .where(
                ProvisioningJob.id == job_id,  # type: ignore[arg-type]
                ProvisioningJob.status == JobStatus.PROVISIONING.value,  # type: ignore[arg-type]
            )
            .values(
                status=JobStatus.FAILED.value,
                error=error,
                completed_at=now,
                updated_at=now,
            )
        )
        return result.rowcount  # type: ignore[attr-defined, no-any-return]
