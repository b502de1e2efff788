"""Provisioning domain errors.

Only ConcurrencyConflict and NotFound are expected to reach callers in normal
operation; timeouts and runner-reported failures are recorded on the job row.
"""

from uuid import UUID


class ProvisioningError(Exception):
    """Base class for provisioning orchestrator errors."""


class ConcurrencyConflict(ProvisioningError):
    """The user already has a queued or provisioning job."""

    def __init__(self, user_id: UUID, blocking_job_id: UUID | None = None):
        self.user_id = user_id
        self.blocking_job_id = blocking_job_id
        super().__init__(
            "A provisioning job is already in progress. Please wait for it to complete."
        )


class NotFound(ProvisioningError):
    """A referenced job, instance or agent does not exist."""

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidTransition(ProvisioningError):
    """The requested status change is not an edge of the job state machine."""

    def __init__(self, job_id: UUID, current: str, requested: str):
        self.job_id = job_id
        self.current = current
        self.requested = requested
        super().__init__(f"Job {job_id} cannot transition from '{current}' to '{requested}'")


class JobNotRetryable(ProvisioningError):
    """Only failed jobs can be retried."""

    def __init__(self, job_id: UUID, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is '{status}'; only failed jobs can be retried")


class RetryLimitExceeded(ProvisioningError):
    """The job has used up its retries and needs support intervention."""

    def __init__(self, job_id: UUID, retry_count: int, max_retries: int):
        self.job_id = job_id
        self.retry_count = retry_count
        self.max_retries = max_retries
        super().__init__(
            f"Job {job_id} has been retried {retry_count} times (limit {max_retries}). "
            "Please contact support."
        )


class AgentInstanceConflict(ProvisioningError):
    """The agent already has a pending, provisioning or running instance."""

    def __init__(self, agent_id: UUID, instance_id: UUID):
        self.agent_id = agent_id
        self.instance_id = instance_id
        super().__init__("Agent already has an active or pending instance")
