"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.orchestrator.api.dependencies.db import DBSession
from src.orchestrator.core.config import ProvisioningConfig, get_settings
from src.orchestrator.services import ProvisioningOrchestrator


def get_provisioning_config() -> ProvisioningConfig:
    return ProvisioningConfig.from_settings(get_settings())


ProvisioningConfigDep = Annotated[ProvisioningConfig, Depends(get_provisioning_config)]


def get_orchestrator(
    session: DBSession, config: ProvisioningConfigDep
) -> ProvisioningOrchestrator:
    """Get provisioning orchestrator bound to the request session."""
    return ProvisioningOrchestrator(session, config)


OrchestratorDep = Annotated[ProvisioningOrchestrator, Depends(get_orchestrator)]
