"""Identity store contract.

An identity store keeps, per scope (the integration token of one installed
instance), the association between a platform contact id and an external
contact id. Lookups work in both directions.

Implementations must make a completed write visible to any read that starts
after it. Concurrent writers to the same pair are not ordered: last write
wins.
"""

from abc import ABC, abstractmethod

from contactbridge.models import Identifier


class IdentityStore(ABC):
    """Abstract interface for identity mapping backends."""

    @abstractmethod
    async def save_ids(self, scope: str, platform_id: Identifier, external_id: Identifier) -> bool:
        """Upsert the pair. Idempotent."""
        ...

    @abstractmethod
    async def get_ext_id(self, scope: str, platform_id: Identifier) -> Identifier | None:
        """External id mapped to ``platform_id``, or None."""
        ...

    @abstractmethod
    async def get_platform_id(self, scope: str, external_id: Identifier) -> Identifier | None:
        """Platform id mapped to ``external_id``, or None."""
        ...

    @abstractmethod
    async def delete_ids(
        self, scope: str, platform_id: Identifier, external_id: Identifier | None
    ) -> bool:
        """Remove the pair. Succeeds when it is already absent."""
        ...

    @abstractmethod
    async def delete_all_ids(self, scope: str) -> bool:
        """Remove every pair of ``scope``."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
