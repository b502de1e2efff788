"""
Job Timeout Sweep Workflow.

Fails provisioning jobs whose workflow runner stopped sending heartbeats.
Started by a Temporal Schedule every TIMEOUT_SWEEP_INTERVAL_SECONDS.

Idempotent: each check is a conditional update on status = provisioning,
so overlapping or retried sweeps never double-fail a job.
"""

import asyncio
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.orchestrator.temporal.activities import (
        check_job_timeout,
        list_provisioning_job_ids,
    )

ACTIVITY_RETRY_POLICY = RetryPolicy(
    maximum_attempts=3,
    initial_interval=timedelta(seconds=2),
)


@workflow.defn
class JobTimeoutSweepWorkflow:
    @workflow.run
    async def run(self) -> dict[str, int]:
        """
        Check every provisioning job for a heartbeat timeout.

        Returns:
            dict with counts: {"checked": int, "timed_out": int}
        """
        job_ids = await workflow.execute_activity(
            list_provisioning_job_ids,
            start_to_close_timeout=timedelta(minutes=1),
            retry_policy=ACTIVITY_RETRY_POLICY,
        )

        # Checks are independent; run them in parallel
        results = await asyncio.gather(
            *(
                workflow.execute_activity(
                    check_job_timeout,
                    job_id,
                    start_to_close_timeout=timedelta(seconds=30),
                    retry_policy=ACTIVITY_RETRY_POLICY,
                )
                for job_id in job_ids
            )
        )

        result = {"checked": len(job_ids), "timed_out": sum(1 for r in results if r)}
        workflow.logger.info(
            f"Timeout sweep complete: {result['timed_out']} of {result['checked']} timed out"
        )
        return result
