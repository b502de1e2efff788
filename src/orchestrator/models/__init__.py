"""Model exports.

Import from here: `from src.orchestrator.models import ProvisioningJob, AgentInstance`
"""

from src.orchestrator.models.agent import Agent, AgentInstance
from src.orchestrator.models.enums import (
    ACTIVE_INSTANCE_STATUSES,
    IN_FLIGHT_JOB_STATUSES,
    IN_PROGRESS_INSTANCE_STATUSES,
    TERMINAL_JOB_STATUSES,
    AgentStatus,
    InstanceStatus,
    JobStatus,
)
from src.orchestrator.models.provisioning import ProvisioningJob

__all__ = [
    # Enums
    "AgentStatus",
    "InstanceStatus",
    "JobStatus",
    # Status groups
    "ACTIVE_INSTANCE_STATUSES",
    "IN_FLIGHT_JOB_STATUSES",
    "IN_PROGRESS_INSTANCE_STATUSES",
    "TERMINAL_JOB_STATUSES",
    # Models
    "Agent",
    "AgentInstance",
    "ProvisioningJob",
]
