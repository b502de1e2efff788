"""Repository layer - data access abstraction."""

from src.orchestrator.repositories.agent import AgentInstanceRepository, AgentRepository
from src.orchestrator.repositories.base import BaseRepository
from src.orchestrator.repositories.provisioning_job import ProvisioningJobRepository

__all__ = [
    "AgentInstanceRepository",
    "AgentRepository",
    "BaseRepository",
    "ProvisioningJobRepository",
]
