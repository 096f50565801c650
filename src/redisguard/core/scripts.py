"""Atomic lock primitives executed as Lua scripts inside Redis."""

from __future__ import annotations

from .store import StoreClient


# KEYS[1] = lock key, ARGV[1] = owner token, ARGV[2] = ttl in seconds
ACQUIRE_LUA = """
if redis.call('set', KEYS[1], ARGV[1], 'NX', 'EX', ARGV[2]) then
    return 1
else
    return 0
end
"""

# KEYS[1] = lock key, ARGV[1] = owner token
RELEASE_LUA = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""

SUCCESS = 1


class AtomicScriptExecutor:
    """Runs the acquire/release scripts; each call is a single EVAL round-trip."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store

    async def acquire(self, lock_key: str, owner_token: str, ttl_seconds: int) -> bool:
        """Set ``lock_key`` to ``owner_token`` with a TTL only if the key is absent."""
        if ttl_seconds < 1:
            raise ValueError(f"ttl_seconds must be a positive integer, got {ttl_seconds}")
        result = await self._store.eval(ACQUIRE_LUA, [lock_key], [owner_token, str(ttl_seconds)])
        return int(result) == SUCCESS

    async def release(self, lock_key: str, owner_token: str) -> bool:
        """Delete ``lock_key`` only while it still holds ``owner_token``.

        Returns False (and leaves the store untouched) when the key is absent
        or owned by someone else.
        """
        result = await self._store.eval(RELEASE_LUA, [lock_key], [owner_token])
        return int(result) == SUCCESS
