"""Temporal Workflows - Re-exports for worker registration."""

from src.orchestrator.temporal.workflows.timeout_sweep import JobTimeoutSweepWorkflow

__all__ = [
    "JobTimeoutSweepWorkflow",
]
