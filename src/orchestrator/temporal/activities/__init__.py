"""
Temporal Activities - Fine-grained, idempotent operations.

Activities open their own database session and go through
ProvisioningOrchestrator, so the sweep applies exactly the same
transitions as the HTTP surface.
"""

from src.orchestrator.temporal.activities.timeout_sweep import (
    check_job_timeout,
    list_provisioning_job_ids,
)

__all__ = [
    "check_job_timeout",
    "list_provisioning_job_ids",
]
