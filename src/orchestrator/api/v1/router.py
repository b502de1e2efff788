from fastapi import APIRouter

from src.orchestrator.api.v1 import agents, provisioning, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(provisioning.router)
api_router.include_router(agents.router)
api_router.include_router(webhooks.router)
