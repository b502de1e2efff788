"""Agent provisioning endpoints for the dashboard."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status

from src.orchestrator.api.dependencies import OrchestratorDep, require_internal_key
from src.orchestrator.schemas.pagination import PaginatedResponse
from src.orchestrator.schemas.provisioning import (
    AgentInstanceRead,
    AgentProvisioningResponse,
    ProvisionAgentRequest,
    ProvisionAgentResponse,
    ProvisioningJobRead,
)
from src.orchestrator.services import build_provisioning_steps

router = APIRouter(
    prefix="/agents",
    tags=["agents"],
    dependencies=[Depends(require_internal_key)],
)


@router.post(
    "/{agent_id}/provision",
    response_model=ProvisionAgentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"description": "Agent not found"},
        409: {"description": "Agent already has an active instance or user has a job running"},
    },
)
async def provision_agent(
    agent_id: UUID,
    orchestrator: OrchestratorDep,
    request: Annotated[ProvisionAgentRequest | None, Body()] = None,
) -> ProvisionAgentResponse:
    """
    Deploy an agent.

    Creates a pending instance and a queued job. Poll
    /agents/{agent_id}/provisioning for progress.
    """
    request = request or ProvisionAgentRequest()
    instance, job = await orchestrator.request_provisioning(
        agent_id, request.user_id, request.region
    )
    return ProvisionAgentResponse(
        job=ProvisioningJobRead.model_validate(job),
        instance=AgentInstanceRead.model_validate(instance),
        steps=build_provisioning_steps(instance.status, instance.current_step),
    )


@router.get(
    "/{agent_id}/provisioning",
    response_model=AgentProvisioningResponse,
    responses={
        200: {
            "description": "Latest job, instance and checklist (all null if never provisioned)",
        },
    },
)
async def get_agent_provisioning(
    agent_id: UUID, orchestrator: OrchestratorDep
) -> AgentProvisioningResponse:
    job, instance, steps = await orchestrator.get_agent_provisioning(agent_id)
    return AgentProvisioningResponse(
        job=ProvisioningJobRead.model_validate(job) if job else None,
        instance=AgentInstanceRead.model_validate(instance) if instance else None,
        steps=steps,
    )


@router.get(
    "/{agent_id}/provisioning/jobs",
    response_model=PaginatedResponse[ProvisioningJobRead],
)
async def list_agent_jobs(
    agent_id: UUID,
    orchestrator: OrchestratorDep,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Number of items per page")] = 20,
) -> PaginatedResponse[ProvisioningJobRead]:
    """Provisioning history for an agent, newest first."""
    jobs, next_cursor, has_more = await orchestrator.list_jobs_for_agent(agent_id, cursor, limit)
    return PaginatedResponse(
        items=[ProvisioningJobRead.model_validate(j) for j in jobs],
        next_cursor=next_cursor,
        has_more=has_more,
    )
