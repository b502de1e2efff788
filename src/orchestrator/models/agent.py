"""Agent and agent instance models."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.orchestrator.models.base import utc_now
from src.orchestrator.models.enums import AgentStatus, InstanceStatus

# Rendered into the partial unique index; must match ACTIVE_INSTANCE_STATUSES.
_ACTIVE_PREDICATE = "status IN ('pending', 'provisioning', 'running')"


class Agent(SQLModel, table=True):
    """Customer AI agent. Owned by the dashboard; only its status is written here."""

    __tablename__ = "agents"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    name: str = Field(max_length=100)
    status: str = Field(default=AgentStatus.DRAFT.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> AgentStatus:
        """Get status as AgentStatus enum."""
        return AgentStatus(self.status)


class AgentInstance(SQLModel, table=True):
    """The compute instance (VM) backing an agent. Survives across retried jobs."""

    __tablename__ = "agent_instances"
    __table_args__ = (
        # At most one live or in-progress instance per agent
        Index(
            "uq_agent_instances_agent_active",
            "agent_id",
            unique=True,
            postgresql_where=text(_ACTIVE_PREDICATE),
            sqlite_where=text(_ACTIVE_PREDICATE),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    agent_id: UUID = Field(foreign_key="agents.id", index=True)
    status: str = Field(default=InstanceStatus.PENDING.value, max_length=20)
    server_id: str | None = Field(default=None, max_length=100)
    server_ip: str | None = Field(default=None, max_length=45)
    tailscale_ip: str | None = Field(default=None, max_length=45)
    region: str = Field(default="us-east", max_length=50)
    current_step: str | None = Field(default=None, max_length=100)
    error: str | None = Field(default=None)
    started_at: datetime | None = Field(default=None)
    stopped_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> InstanceStatus:
        """Get status as InstanceStatus enum."""
        return InstanceStatus(self.status)
