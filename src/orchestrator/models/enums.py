"""Shared enums for models."""

from enum import Enum


class JobStatus(str, Enum):
    """Provisioning job status.

    queued -> provisioning -> running | failed. running and failed are terminal.
    """

    QUEUED = "queued"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset({JobStatus.RUNNING, JobStatus.FAILED})

# At most one job per user may sit in these states.
IN_FLIGHT_JOB_STATUSES = (JobStatus.QUEUED, JobStatus.PROVISIONING)


class InstanceStatus(str, Enum):
    """Agent instance (VM) lifecycle status."""

    PENDING = "pending"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


# At most one instance per agent may sit in these states.
ACTIVE_INSTANCE_STATUSES = (
    InstanceStatus.PENDING,
    InstanceStatus.PROVISIONING,
    InstanceStatus.RUNNING,
)

# Instances that step tracking may still write progress to.
IN_PROGRESS_INSTANCE_STATUSES = (InstanceStatus.PENDING, InstanceStatus.PROVISIONING)


class AgentStatus(str, Enum):
    """Customer agent status."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"
