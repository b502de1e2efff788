"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import AgentFactory, ProvisioningJobFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.provisioning import (
    AgentFactory,
    AgentInstanceFactory,
    ProvisioningJobFactory,
)

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Provisioning
    "AgentFactory",
    "AgentInstanceFactory",
    "ProvisioningJobFactory",
]
