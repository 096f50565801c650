from __future__ import annotations

import fakeredis
import pytest
from fakeredis.aioredis import FakeConnection
from redis.asyncio import Redis

from redisguard.core.counters import CounterService
from redisguard.core.locks_redis import RedisLockManager
from redisguard.core.scripts import AtomicScriptExecutor
from redisguard.core.settings import StoreSettings
from redisguard.core.store import StoreClient


# smaller than the concurrency the tests generate, so callers queue for connections
POOL_SIZE = 4


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis(fake_server):
    pool = StoreSettings(max_connections=POOL_SIZE).create_pool(
        connection_class=FakeConnection,
        server=fake_server,
    )
    return Redis(connection_pool=pool)


@pytest.fixture
def store(fake_redis):
    return StoreClient(fake_redis)


@pytest.fixture
def executor(store):
    return AtomicScriptExecutor(store)


@pytest.fixture
def counters(store):
    return CounterService(store)


@pytest.fixture
def lock_manager(store):
    # short interval keeps polling tests fast
    return RedisLockManager(store, retry_interval_ms=20)
