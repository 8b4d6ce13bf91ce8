"""Identity store backends."""

from contactbridge.store.base import IdentityStore
from contactbridge.store.memory import InMemoryIdentityStore

__all__ = ["IdentityStore", "InMemoryIdentityStore"]
