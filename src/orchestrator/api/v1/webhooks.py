"""Signed callbacks from the external workflow runner."""

import json

from fastapi import APIRouter, Header, HTTPException, Request, status
from pydantic import ValidationError

from src.orchestrator.api.dependencies import OrchestratorDep
from src.orchestrator.core.config import get_settings
from src.orchestrator.core.logging import bind_job_context, get_logger
from src.orchestrator.core.security import SIGNATURE_HEADER, verify_signature
from src.orchestrator.schemas.provisioning import CallbackAck, CallbackType, WorkflowCallback
from src.orchestrator.services import ProvisioningOrchestrator

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


async def dispatch_callback(
    orchestrator: ProvisioningOrchestrator, callback: WorkflowCallback
) -> None:
    match callback.type:
        case CallbackType.CLAIM:
            await orchestrator.claim(
                callback.job_id,
                callback.workflow_run_id,  # type: ignore[arg-type]
            )
        case CallbackType.HEARTBEAT:
            await orchestrator.record_heartbeat(callback.job_id)
        case CallbackType.STEP:
            await orchestrator.record_step(
                callback.job_id,
                callback.step,  # type: ignore[arg-type]
                callback.metadata,
            )
        case CallbackType.FAIL:
            await orchestrator.fail(
                callback.job_id,
                callback.error,  # type: ignore[arg-type]
                callback.failed_step,
            )
        case CallbackType.COMPLETE:
            await orchestrator.complete_with_metadata(
                callback.job_id,
                callback.vm,  # type: ignore[arg-type]
            )


@router.post(
    "/workflow",
    response_model=CallbackAck,
    responses={
        400: {"description": "Body is not valid JSON"},
        401: {"description": "Missing or invalid signature"},
        404: {"description": "Job not found"},
        409: {"description": "Callback is not valid for the job's current status"},
        422: {"description": "Payload failed validation"},
    },
)
async def workflow_callback(
    request: Request,
    orchestrator: OrchestratorDep,
    x_signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
) -> CallbackAck:
    """
    Apply a claim, heartbeat, step, fail or complete callback.

    The body must be signed with HMAC-SHA256 over the raw bytes using the
    shared callback secret, hex digest in `X-Signature`.
    """
    body = await request.body()
    if not verify_signature(body, x_signature, get_settings().callback_secret):
        logger.warning("workflow_callback_rejected", reason="invalid_signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON",
        ) from e

    try:
        callback = WorkflowCallback.model_validate(data)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e

    bind_job_context(callback.job_id)
    logger.info("workflow_callback_received", callback_type=callback.type.value)

    await dispatch_callback(orchestrator, callback)

    job = await orchestrator.get_job(callback.job_id)
    return CallbackAck(job_id=job.id, status=job.status)
