from src.orchestrator.schemas.pagination import PaginatedResponse
from src.orchestrator.schemas.provisioning import (
    AgentInstanceRead,
    AgentProvisioningResponse,
    CallbackAck,
    CallbackType,
    EnqueueJobRequest,
    ProvisionAgentRequest,
    ProvisionAgentResponse,
    ProvisioningJobRead,
    ProvisioningStep,
    SweepResponse,
    TimeoutCheckResponse,
    VmMetadata,
    WorkflowCallback,
)

__all__ = [
    # Pagination
    "PaginatedResponse",
    # Provisioning
    "AgentInstanceRead",
    "AgentProvisioningResponse",
    "EnqueueJobRequest",
    "ProvisionAgentRequest",
    "ProvisionAgentResponse",
    "ProvisioningJobRead",
    "ProvisioningStep",
    "SweepResponse",
    "TimeoutCheckResponse",
    "VmMetadata",
    # Workflow runner callbacks
    "CallbackAck",
    "CallbackType",
    "WorkflowCallback",
]
