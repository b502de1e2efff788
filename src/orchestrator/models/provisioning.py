"""Provisioning job model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.orchestrator.models.base import utc_now
from src.orchestrator.models.enums import JobStatus

# Rendered into the partial unique index; must match IN_FLIGHT_JOB_STATUSES.
_IN_FLIGHT_PREDICATE = "status IN ('queued', 'provisioning')"


class ProvisioningJob(SQLModel, table=True):
    """One row per provisioning attempt. Never deleted once terminal."""

    __tablename__ = "provisioning_jobs"
    __table_args__ = (
        # Database-level guard: one in-flight job per user
        Index(
            "uq_provisioning_jobs_user_in_flight",
            "user_id",
            unique=True,
            postgresql_where=text(_IN_FLIGHT_PREDICATE),
            sqlite_where=text(_IN_FLIGHT_PREDICATE),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    agent_id: UUID = Field(foreign_key="agents.id", index=True)
    user_id: UUID = Field(index=True)
    stripe_event_id: str = Field(max_length=255, index=True)
    region: str = Field(default="us-east", max_length=50)
    status: str = Field(default=JobStatus.QUEUED.value, max_length=20, index=True)
    retry_count: int = Field(default=0, ge=0)
    workflow_run_id: str | None = Field(default=None, max_length=255)
    error: str | None = Field(default=None)
    failed_step: str | None = Field(default=None, max_length=100)
    claimed_at: datetime | None = Field(default=None)
    last_heartbeat_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> JobStatus:
        """Get status as JobStatus enum."""
        return JobStatus(self.status)
