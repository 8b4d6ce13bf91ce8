"""Redis-backed identity store.

Each scope owns two hashes:

    {prefix}:{scope}:platform -> platform id => external id
    {prefix}:{scope}:external -> external id => platform id

Ids are JSON-encoded so integer ids come back as integers.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError, WatchError

from contactbridge.exceptions import IdentityStoreError
from contactbridge.models import Identifier
from contactbridge.store.base import IdentityStore

logger = logging.getLogger(__name__)

MAX_WATCH_RETRIES = 5


def _encode(identifier: Identifier) -> str:
    return json.dumps(identifier)


def _decode(raw: str | None) -> Identifier | None:
    if raw is None:
        return None
    return json.loads(raw)


class RedisIdentityStore(IdentityStore):
    """Identity pairs persisted in Redis hashes."""

    def __init__(self, redis_client: aioredis.Redis, prefix: str = "contactbridge"):
        self._redis = redis_client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "contactbridge") -> RedisIdentityStore:
        return cls(aioredis.from_url(url, decode_responses=True), prefix=prefix)

    def _keys(self, scope: str) -> tuple[str, str]:
        base = f"{self._prefix}:{scope}"
        return f"{base}:platform", f"{base}:external"

    async def save_ids(self, scope: str, platform_id: Identifier, external_id: Identifier) -> bool:
        by_platform, by_external = self._keys(scope)
        p, e = _encode(platform_id), _encode(external_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(by_platform, by_external)
                        old_e = await pipe.hget(by_platform, p)
                        old_p = await pipe.hget(by_external, e)
                        pipe.multi()
                        # Keep each id paired with a single partner
                        if old_e is not None and old_e != e:
                            pipe.hdel(by_external, old_e)
                        if old_p is not None and old_p != p:
                            pipe.hdel(by_platform, old_p)
                        pipe.hset(by_platform, p, e)
                        pipe.hset(by_external, e, p)
                        await pipe.execute()
                        return True
                    except WatchError:
                        logger.debug(f"Concurrent write on scope {scope}, retrying save")
        except RedisError as exc:
            raise IdentityStoreError(f"Failed to save ids for scope {scope!r}: {exc}") from exc
        raise IdentityStoreError(f"Gave up saving ids for scope {scope!r} after concurrent writes")

    async def get_ext_id(self, scope: str, platform_id: Identifier) -> Identifier | None:
        by_platform, _ = self._keys(scope)
        try:
            return _decode(await self._redis.hget(by_platform, _encode(platform_id)))
        except RedisError as exc:
            raise IdentityStoreError(f"Failed to read external id: {exc}") from exc

    async def get_platform_id(self, scope: str, external_id: Identifier) -> Identifier | None:
        _, by_external = self._keys(scope)
        try:
            return _decode(await self._redis.hget(by_external, _encode(external_id)))
        except RedisError as exc:
            raise IdentityStoreError(f"Failed to read platform id: {exc}") from exc

    async def delete_ids(
        self, scope: str, platform_id: Identifier, external_id: Identifier | None
    ) -> bool:
        by_platform, by_external = self._keys(scope)
        p = _encode(platform_id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(by_platform, by_external)
                        mapped_e = await pipe.hget(by_platform, p)
                        candidates = {mapped_e, None if external_id is None else _encode(external_id)}
                        # An external id re-paired since then belongs to another contact
                        stale = []
                        for e in candidates - {None}:
                            if await pipe.hget(by_external, e) == p:
                                stale.append(e)
                        pipe.multi()
                        pipe.hdel(by_platform, p)
                        for e in stale:
                            pipe.hdel(by_external, e)
                        await pipe.execute()
                        return True
                    except WatchError:
                        logger.debug(f"Concurrent write on scope {scope}, retrying delete")
        except RedisError as exc:
            raise IdentityStoreError(f"Failed to delete ids for scope {scope!r}: {exc}") from exc
        raise IdentityStoreError(f"Gave up deleting ids for scope {scope!r} after concurrent writes")

    async def delete_all_ids(self, scope: str) -> bool:
        try:
            deleted = await self._redis.delete(*self._keys(scope))
        except RedisError as exc:
            raise IdentityStoreError(f"Failed to delete ids for scope {scope!r}: {exc}") from exc
        logger.debug(f"Deleted {deleted} identity hash(es) for scope {scope}")
        return True

    async def close(self) -> None:
        await self._redis.aclose()
