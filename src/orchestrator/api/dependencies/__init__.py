"""API dependencies - re-exports for route modules."""

from src.orchestrator.api.dependencies.auth import require_internal_key
from src.orchestrator.api.dependencies.db import DBSession, get_db_session
from src.orchestrator.api.dependencies.services import (
    OrchestratorDep,
    ProvisioningConfigDep,
    get_orchestrator,
    get_provisioning_config,
)

__all__ = [
    # Auth
    "require_internal_key",
    # Database
    "DBSession",
    "get_db_session",
    # Services
    "OrchestratorDep",
    "ProvisioningConfigDep",
    "get_orchestrator",
    "get_provisioning_config",
]
