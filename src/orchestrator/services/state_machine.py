"""Provisioning job state machine.

    queued --(claim)--> provisioning --(success)--> running
    queued --(claim)--> provisioning --(failure/timeout)--> failed

A queued job may also fail directly (the runner can fail before claiming).
provisioning -> provisioning is a duplicate claim and is tolerated.
"""

from src.orchestrator.models import JobStatus

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROVISIONING, JobStatus.FAILED}),
    JobStatus.PROVISIONING: frozenset(
        {JobStatus.PROVISIONING, JobStatus.RUNNING, JobStatus.FAILED}
    ),
    JobStatus.RUNNING: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def is_allowed_transition(current: JobStatus, requested: JobStatus) -> bool:
    """Check whether current -> requested is an edge of the state machine."""
    return requested in ALLOWED_TRANSITIONS[current]
