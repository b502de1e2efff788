"""Temporal Schedule that drives the timeout sweep."""

from datetime import timedelta

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
)

from src.orchestrator.core.config import Settings
from src.orchestrator.core.logging import get_logger
from src.orchestrator.temporal.workflows import JobTimeoutSweepWorkflow

logger = get_logger(__name__)

TIMEOUT_SWEEP_SCHEDULE_ID = "provisioning-timeout-sweep"
TIMEOUT_SWEEP_WORKFLOW_ID = "provisioning-timeout-sweep-run"


def build_timeout_sweep_schedule(settings: Settings) -> Schedule:
    return Schedule(
        action=ScheduleActionStartWorkflow(
            JobTimeoutSweepWorkflow.run,
            id=TIMEOUT_SWEEP_WORKFLOW_ID,
            task_queue=settings.temporal_task_queue,
        ),
        spec=ScheduleSpec(
            intervals=[
                ScheduleIntervalSpec(
                    every=timedelta(seconds=settings.timeout_sweep_interval_seconds)
                )
            ]
        ),
        # A slow sweep must not pile up behind itself
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


async def ensure_timeout_sweep_schedule(client: Client, settings: Settings) -> bool:
    """Create the sweep schedule if it does not exist yet.

    Returns:
        True if the schedule was created, False if it already existed
    """
    try:
        await client.create_schedule(
            TIMEOUT_SWEEP_SCHEDULE_ID,
            build_timeout_sweep_schedule(settings),
        )
    except ScheduleAlreadyRunningError:
        logger.info("timeout_sweep_schedule_exists", schedule_id=TIMEOUT_SWEEP_SCHEDULE_ID)
        return False

    logger.info(
        "timeout_sweep_schedule_created",
        schedule_id=TIMEOUT_SWEEP_SCHEDULE_ID,
        interval_seconds=settings.timeout_sweep_interval_seconds,
        task_queue=settings.temporal_task_queue,
    )
    return True
