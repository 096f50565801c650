"""Atomic integer counters used for sequence generation."""

from __future__ import annotations

from .store import StoreClient


class CounterService:
    """Named 64-bit counters backed by Redis' native atomic increments.

    Counters come into existence at 0 on first use. ``initialize`` and
    ``reset`` are plain writes: concurrent setup calls are last-writer-wins.
    """

    def __init__(self, store: StoreClient) -> None:
        self._store = store

    async def increment(self, key: str) -> int:
        return await self._store.incr(key)

    async def decrement(self, key: str) -> int:
        return await self._store.decr(key)

    async def add_and_get(self, key: str, delta: int) -> int:
        return await self._store.incrby(key, delta)

    async def get_and_set(self, key: str, value: int) -> int:
        """Replace the value and return the previous one (0 when unset)."""
        previous = await self._store.getset(key, int(value))
        return int(previous) if previous is not None else 0

    async def get(self, key: str) -> int:
        raw = await self._store.get_raw(key)
        return int(raw) if raw is not None else 0

    async def initialize(self, key: str, value: int) -> int:
        await self._store.set_raw(key, int(value))
        return int(value)

    async def reset(self, key: str) -> int:
        return await self.initialize(key, 0)

    async def generate(self, key: str) -> int:
        """Next number in the sequence stored at ``key``."""
        return await self.increment(key)
