"""Thin async client around the shared Redis store."""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional, Set

from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .exceptions import StoreUnavailableError
from .settings import StoreSettings


class StoreClient:
    """Key-value access to Redis with JSON values and store-unavailable translation.

    Every other component talks to Redis through this client so that a
    transport failure always surfaces as :class:`StoreUnavailableError`.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> "StoreClient":
        return cls(StoreSettings(url=url).create_client())

    async def _call(self, command: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return await getattr(self._redis, command)(*args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StoreUnavailableError(f"Redis unavailable during {command.upper()}: {exc}") from exc

    async def get(self, key: str) -> Any:
        raw = await self._call("get", key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            # written by another client (lock tokens, for instance)
            return raw

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        payload = json.dumps(value)
        await self._call("set", key, payload, ex=ttl_seconds)
        return True

    async def exists(self, key: str) -> bool:
        return bool(await self._call("exists", key))

    async def keys(self, pattern: str) -> Set[str]:
        return set(await self._call("keys", pattern))

    async def delete(self, key: str) -> bool:
        return bool(await self._call("delete", key))

    async def get_expire(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when the key never expires, -2 when absent."""
        return int(await self._call("ttl", key))

    async def eval(self, script: str, keys: Iterable[str], args: Iterable[Any]) -> Any:
        key_list = list(keys)
        return await self._call("eval", script, len(key_list), *key_list, *args)

    async def incr(self, key: str) -> int:
        return int(await self._call("incr", key))

    async def decr(self, key: str) -> int:
        return int(await self._call("decr", key))

    async def incrby(self, key: str, amount: int) -> int:
        return int(await self._call("incrby", key, amount))

    async def getset(self, key: str, value: int) -> Optional[str]:
        return await self._call("getset", key, value)

    async def get_raw(self, key: str) -> Optional[str]:
        return await self._call("get", key)

    async def set_raw(self, key: str, value: Any) -> None:
        await self._call("set", key, value)

    async def close(self) -> None:
        await self._redis.aclose()
