import ipaddress
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class VmMetadata(BaseModel):
    """VM details reported by the workflow runner on successful provisioning."""

    model_config = ConfigDict(frozen=True)

    server_id: str = Field(min_length=1, max_length=100)
    server_ip: str
    tailscale_ip: str

    @field_validator("server_ip", "tailscale_ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        try:
            ipaddress.ip_address(v)
        except ValueError as e:
            raise ValueError(f"Invalid IP address: {v}") from e
        return v


class EnqueueJobRequest(BaseModel):
    """Billing handler request to start provisioning for a purchase."""

    agent_id: UUID
    user_id: UUID
    stripe_event_id: str = Field(
        min_length=1,
        max_length=255,
        json_schema_extra={"examples": ["evt_1PqRsT2eZvKYlo2C"]},
    )
    region: str | None = Field(default=None, min_length=1, max_length=50)


class ProvisionAgentRequest(BaseModel):
    """Dashboard request to deploy an agent."""

    user_id: UUID | None = None
    region: str | None = Field(default=None, min_length=1, max_length=50)


class ProvisioningJobRead(BaseModel):
    id: UUID
    agent_id: UUID
    user_id: UUID
    stripe_event_id: str
    region: str
    status: str
    retry_count: int
    workflow_run_id: str | None = None
    error: str | None = None
    failed_step: str | None = None
    claimed_at: datetime | None = None
    last_heartbeat_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AgentInstanceRead(BaseModel):
    id: UUID
    agent_id: UUID
    status: str
    server_id: str | None = None
    server_ip: str | None = None
    tailscale_ip: str | None = None
    region: str
    current_step: str | None = None
    error: str | None = None
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProvisioningStep(BaseModel):
    """One row of the dashboard's provisioning checklist."""

    id: str
    label: str
    status: Literal["pending", "active", "completed", "error"]


class AgentProvisioningResponse(BaseModel):
    """Current provisioning state of an agent for the dashboard."""

    job: ProvisioningJobRead | None = None
    instance: AgentInstanceRead | None = None
    steps: list[ProvisioningStep] | None = None


class ProvisionAgentResponse(BaseModel):
    """Response when a dashboard deploy request is accepted."""

    job: ProvisioningJobRead
    instance: AgentInstanceRead
    steps: list[ProvisioningStep]


class TimeoutCheckResponse(BaseModel):
    job_id: UUID
    timed_out: bool


class SweepResponse(BaseModel):
    checked: int
    timed_out: list[UUID]


class CallbackType(StrEnum):
    """Kinds of callback the workflow runner sends."""

    CLAIM = "claim"
    HEARTBEAT = "heartbeat"
    STEP = "step"
    FAIL = "fail"
    COMPLETE = "complete"


class WorkflowCallback(BaseModel):
    """Signed callback from the external workflow runner."""

    job_id: UUID
    type: CallbackType
    workflow_run_id: str | None = Field(default=None, max_length=255)
    step: str | None = Field(default=None, min_length=1, max_length=100)
    metadata: dict[str, Any] | None = None
    error: str | None = None
    failed_step: str | None = Field(default=None, max_length=100)
    vm: VmMetadata | None = None

    @model_validator(mode="after")
    def validate_required_fields(self) -> "WorkflowCallback":
        """Each callback type carries its own required fields."""
        if self.type == CallbackType.CLAIM and not self.workflow_run_id:
            raise ValueError("claim callback requires workflow_run_id")
        if self.type == CallbackType.STEP and not self.step:
            raise ValueError("step callback requires step")
        if self.type == CallbackType.FAIL and not self.error:
            raise ValueError("fail callback requires error")
        if self.type == CallbackType.COMPLETE and self.vm is None:
            raise ValueError("complete callback requires vm")
        return self


class CallbackAck(BaseModel):
    received: bool = True
    job_id: UUID
    status: str | None = None
