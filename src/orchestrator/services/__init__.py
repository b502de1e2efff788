"""Service layer - business logic and transaction control."""

from src.orchestrator.services.exceptions import (
    AgentInstanceConflict,
    ConcurrencyConflict,
    InvalidTransition,
    JobNotRetryable,
    NotFound,
    ProvisioningError,
    RetryLimitExceeded,
)
from src.orchestrator.services.heartbeat_monitor import HeartbeatMonitor, SweepResult
from src.orchestrator.services.instance_reconciler import InstanceReconciler
from src.orchestrator.services.job_status_service import JobStatusService
from src.orchestrator.services.orchestrator import ProvisioningOrchestrator
from src.orchestrator.services.progress import build_provisioning_steps
from src.orchestrator.services.provisioning_queue_service import ProvisioningQueueService
from src.orchestrator.services.step_tracker import StepTracker

__all__ = [
    "AgentInstanceConflict",
    "ConcurrencyConflict",
    "HeartbeatMonitor",
    "InstanceReconciler",
    "InvalidTransition",
    "JobNotRetryable",
    "JobStatusService",
    "NotFound",
    "ProvisioningError",
    "ProvisioningOrchestrator",
    "ProvisioningQueueService",
    "RetryLimitExceeded",
    "StepTracker",
    "SweepResult",
    "build_provisioning_steps",
]
