"""Process-local identity store."""

from contactbridge.models import Identifier
from contactbridge.store.base import IdentityStore


class _ScopeIndex:
    def __init__(self) -> None:
        self.platform_to_external: dict[Identifier, Identifier] = {}
        self.external_to_platform: dict[Identifier, Identifier] = {}


class InMemoryIdentityStore(IdentityStore):
    """Keeps identity pairs in dictionaries, one pair of indexes per scope.

    Saving a pair drops any previous partner of either id, so each id has at
    most one partner per scope. Nothing survives the process.
    """

    def __init__(self) -> None:
        self._scopes: dict[str, _ScopeIndex] = {}

    def _index(self, scope: str) -> _ScopeIndex:
        if scope not in self._scopes:
            self._scopes[scope] = _ScopeIndex()
        return self._scopes[scope]

    async def save_ids(self, scope: str, platform_id: Identifier, external_id: Identifier) -> bool:
        index = self._index(scope)

        old_external = index.platform_to_external.pop(platform_id, None)
        if old_external is not None:
            index.external_to_platform.pop(old_external, None)
        old_platform = index.external_to_platform.pop(external_id, None)
        if old_platform is not None:
            index.platform_to_external.pop(old_platform, None)

        index.platform_to_external[platform_id] = external_id
        index.external_to_platform[external_id] = platform_id
        return True

    async def get_ext_id(self, scope: str, platform_id: Identifier) -> Identifier | None:
        index = self._scopes.get(scope)
        return index.platform_to_external.get(platform_id) if index else None

    async def get_platform_id(self, scope: str, external_id: Identifier) -> Identifier | None:
        index = self._scopes.get(scope)
        return index.external_to_platform.get(external_id) if index else None

    async def delete_ids(
        self, scope: str, platform_id: Identifier, external_id: Identifier | None
    ) -> bool:
        index = self._scopes.get(scope)
        if index is None:
            return True

        mapped_external = index.platform_to_external.pop(platform_id, None)
        for ext_id in {external_id, mapped_external} - {None}:
            if index.external_to_platform.get(ext_id) == platform_id:
                del index.external_to_platform[ext_id]
        return True

    async def delete_all_ids(self, scope: str) -> bool:
        self._scopes.pop(scope, None)
        return True

    def count(self, scope: str) -> int:
        """Number of pairs stored for ``scope``."""
        index = self._scopes.get(scope)
        return len(index.platform_to_external) if index else 0
