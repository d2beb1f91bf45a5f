"""
Charity registry gateway.

The engine reads three facts about a charity and nothing else:

    is_valid(charity_id)       → True, or NotFound
    owner_of(charity_id)       → owner address (payout target)
    revenue_share(charity_id)  → whole percentage in [0, 100]

Minting, handle rules and token transfer restrictions live in the real
registry and are not modelled here. InMemoryCharityRegistry is the
implementation used by configuration, the CLI and the tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

from treasurehunt.core.exceptions import InvalidInput, NotFound
from treasurehunt.core.models import MAX_REVENUE_SHARE


class RegistryGateway(ABC):
    """Read-only view of the charity registry."""

    @abstractmethod
    def is_valid(self, charity_id: int) -> bool:
        """Return True for a registered charity; raise NotFound otherwise."""

    @abstractmethod
    def owner_of(self, charity_id: int) -> str:
        """Current owner address. Raises NotFound for an unknown charity."""

    @abstractmethod
    def revenue_share(self, charity_id: int) -> int:
        """Charity's share of the post-fee pool, 0–100."""


@dataclass
class CharityEntry:
    charity_id:    int
    owner:         str
    revenue_share: int


class InMemoryCharityRegistry(RegistryGateway):

    def __init__(self) -> None:
        self._charities: Dict[int, CharityEntry] = {}

    @classmethod
    def from_dict(cls, data: Dict[Any, Dict[str, Any]]) -> "InMemoryCharityRegistry":
        """
        Build from a mapping of charity id → {"owner": ..., "revenue_share": ...}.
        Ids may arrive as strings (YAML / JSON keys).
        """
        registry = cls()
        for raw_id, entry in (data or {}).items():
            if not isinstance(entry, dict):
                raise InvalidInput(f"charity {raw_id!r} must be a mapping")
            try:
                charity_id = int(raw_id)
            except (TypeError, ValueError):
                raise InvalidInput(f"charity id {raw_id!r} is not an integer")
            registry.register(
                charity_id,
                owner=entry.get("owner"),
                revenue_share=entry.get("revenue_share", 0),
            )
        return registry

    def register(self, charity_id: int, owner: str, revenue_share: int) -> CharityEntry:
        if not isinstance(charity_id, int) or isinstance(charity_id, bool) or charity_id <= 0:
            raise InvalidInput(f"charity id must be a positive int, got {charity_id!r}")
        if not isinstance(owner, str) or not owner:
            raise InvalidInput("charity owner must be a non-empty address")
        if (
            not isinstance(revenue_share, int)
            or isinstance(revenue_share, bool)
            or not 0 <= revenue_share <= MAX_REVENUE_SHARE
        ):
            raise InvalidInput(
                f"revenue share must be an int in [0, {MAX_REVENUE_SHARE}], "
                f"got {revenue_share!r}"
            )
        entry = CharityEntry(charity_id, owner, revenue_share)
        self._charities[charity_id] = entry
        return entry

    def transfer(self, charity_id: int, new_owner: str) -> None:
        """Move ownership of a charity identity to another address."""
        entry = self._get(charity_id)
        if not isinstance(new_owner, str) or not new_owner:
            raise InvalidInput("new owner must be a non-empty address")
        entry.owner = new_owner

    def is_valid(self, charity_id: int) -> bool:
        self._get(charity_id)
        return True

    def owner_of(self, charity_id: int) -> str:
        return self._get(charity_id).owner

    def revenue_share(self, charity_id: int) -> int:
        return self._get(charity_id).revenue_share

    def _get(self, charity_id: int) -> CharityEntry:
        entry = self._charities.get(charity_id)
        if entry is None:
            raise NotFound(
                f"Unknown charity {charity_id!r}", {"charity_id": charity_id}
            )
        return entry
