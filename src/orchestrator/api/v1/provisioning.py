"""Provisioning job endpoints for the billing handler, dashboard and operators."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from src.orchestrator.api.dependencies import OrchestratorDep, require_internal_key
from src.orchestrator.schemas.provisioning import (
    EnqueueJobRequest,
    ProvisioningJobRead,
    SweepResponse,
    TimeoutCheckResponse,
)

router = APIRouter(
    prefix="/provisioning",
    tags=["provisioning"],
    dependencies=[Depends(require_internal_key)],
)

_JOB_EXAMPLE = {
    "id": "0b9c3f0e-8a1d-4c57-9b7e-1f2a3b4c5d6e",
    "agent_id": "5f1e2d3c-4b5a-6978-8a9b-0c1d2e3f4a5b",
    "user_id": "7a6b5c4d-3e2f-1a0b-9c8d-7e6f5a4b3c2d",
    "stripe_event_id": "evt_1PqRsT2eZvKYlo2C",
    "region": "us-east",
    "status": "queued",
    "retry_count": 0,
    "workflow_run_id": None,
    "error": None,
    "failed_step": None,
    "claimed_at": None,
    "last_heartbeat_at": None,
    "completed_at": None,
    "created_at": "2026-01-15T10:30:00",
    "updated_at": "2026-01-15T10:30:00",
}


@router.post(
    "/jobs",
    response_model=ProvisioningJobRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "A job already exists for this billing event"},
        201: {
            "description": "Job queued",
            "content": {"application/json": {"example": _JOB_EXAMPLE}},
        },
        404: {"description": "Agent not found"},
        409: {"description": "User already has a queued or provisioning job"},
    },
)
async def enqueue_job(
    request: EnqueueJobRequest,
    response: Response,
    orchestrator: OrchestratorDep,
) -> ProvisioningJobRead:
    """
    Queue provisioning for a purchase.

    Idempotent per `stripe_event_id`: a redelivered billing event returns the
    job created the first time with status 200.
    """
    existing = await orchestrator.find_job_by_external_event_id(request.stripe_event_id)
    if existing is not None:
        response.status_code = status.HTTP_200_OK
        return ProvisioningJobRead.model_validate(existing)

    job = await orchestrator.enqueue(
        request.agent_id,
        request.user_id,
        request.stripe_event_id,
        request.region,
    )
    return ProvisioningJobRead.model_validate(job)


@router.get(
    "/jobs/{job_id}",
    response_model=ProvisioningJobRead,
    responses={404: {"description": "Job not found"}},
)
async def get_job(job_id: UUID, orchestrator: OrchestratorDep) -> ProvisioningJobRead:
    job = await orchestrator.get_job(job_id)
    return ProvisioningJobRead.model_validate(job)


@router.post(
    "/jobs/{job_id}/retry",
    response_model=ProvisioningJobRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Job not found"},
        409: {
            "description": (
                "Job is not failed, has exhausted its retries, "
                "or the user already has a job in progress"
            )
        },
    },
)
async def retry_job(job_id: UUID, orchestrator: OrchestratorDep) -> ProvisioningJobRead:
    """Queue a fresh attempt for a failed job."""
    job = await orchestrator.retry(job_id)
    return ProvisioningJobRead.model_validate(job)


@router.post("/jobs/{job_id}/check-timeout", response_model=TimeoutCheckResponse)
async def check_job_timeout(job_id: UUID, orchestrator: OrchestratorDep) -> TimeoutCheckResponse:
    """Fail the job now if its runner has stopped sending heartbeats."""
    timed_out = await orchestrator.check_timeout(job_id)
    return TimeoutCheckResponse(job_id=job_id, timed_out=timed_out)


@router.post("/sweep", response_model=SweepResponse)
async def sweep_timeouts(orchestrator: OrchestratorDep) -> SweepResponse:
    """
    Check every provisioning job for a timeout.

    The Temporal schedule does this periodically; this endpoint is for
    operators and environments running without a worker.
    """
    result = await orchestrator.sweep_timeouts()
    return SweepResponse(checked=result.checked, timed_out=result.timed_out)
