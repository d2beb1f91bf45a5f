"""
Charity registry gateway: the engine's only view of charity identities.
"""

from treasurehunt.registry.gateway import (
    CharityEntry,
    InMemoryCharityRegistry,
    RegistryGateway,
)

__all__ = ["RegistryGateway", "InMemoryCharityRegistry", "CharityEntry"]
