from __future__ import annotations

import asyncio

import pytest

from redisguard.core.exceptions import LockTimeoutError, StoreUnavailableError
from redisguard.core.scripts import AtomicScriptExecutor


@pytest.fixture
def release_calls(monkeypatch):
    calls = []
    original = AtomicScriptExecutor.release

    async def recording_release(self, lock_key, owner_token):
        calls.append(lock_key)
        return await original(self, lock_key, owner_token)

    monkeypatch.setattr(AtomicScriptExecutor, "release", recording_release)
    return calls


@pytest.mark.asyncio
async def test_returns_operation_result_and_releases(lock_manager, fake_redis, release_calls):
    async def operation():
        assert await fake_redis.exists("lock:job") == 1
        return {"rows": 3}

    result = await lock_manager.with_lock(operation, "lock:job", 1000)

    assert result == {"rows": 3}
    assert release_calls == ["lock:job"]
    assert await fake_redis.exists("lock:job") == 0


@pytest.mark.asyncio
async def test_sync_operation_is_supported(lock_manager):
    assert await lock_manager.with_lock(lambda: 42, "lock:sync", 1000) == 42


@pytest.mark.asyncio
async def test_operation_returning_none(lock_manager, fake_redis, release_calls):
    errors = []
    assert await lock_manager.with_lock(lambda: None, "lock:none", 1000, error_handler=errors.append) is None
    assert errors == []
    assert release_calls == ["lock:none"]


@pytest.mark.asyncio
async def test_operation_error_goes_to_handler_and_lock_is_released(lock_manager, fake_redis, release_calls):
    errors = []
    boom = RuntimeError("boom")

    async def operation():
        raise boom

    result = await lock_manager.with_lock(operation, "lock:fail", 1000, error_handler=errors.append)

    assert result is None
    assert errors == [boom]
    assert release_calls == ["lock:fail"]
    assert await fake_redis.exists("lock:fail") == 0


@pytest.mark.asyncio
async def test_errors_are_silent_without_handler(lock_manager, fake_redis):
    def operation():
        raise ValueError("ignored")

    assert await lock_manager.with_lock(operation, "lock:silent", 1000) is None
    assert await fake_redis.exists("lock:silent") == 0


@pytest.mark.asyncio
async def test_reraising_handler_propagates_after_release(lock_manager, fake_redis):
    def operation():
        raise KeyError("missing")

    def reraise(exc: Exception) -> None:
        raise exc

    with pytest.raises(KeyError):
        await lock_manager.with_lock(operation, "lock:strict", 1000, error_handler=reraise)
    assert await fake_redis.exists("lock:strict") == 0


@pytest.mark.asyncio
async def test_async_error_handler(lock_manager, executor):
    await executor.acquire("lock:held", "other", 30)
    seen = []

    async def handler(exc: Exception) -> None:
        seen.append(type(exc))

    await lock_manager.with_lock(lambda: "never", "lock:held", 0, error_handler=handler)
    assert seen == [LockTimeoutError]


@pytest.mark.asyncio
async def test_timeout_does_not_release_foreign_lock(lock_manager, executor, fake_redis, release_calls):
    await executor.acquire("lock:held", "other", 30)
    await lock_manager.with_lock(lambda: "never", "lock:held", 40)

    assert release_calls == []
    assert await fake_redis.get("lock:held") == "other"


@pytest.mark.asyncio
async def test_store_outage_goes_to_handler(lock_manager, fake_server):
    errors = []
    fake_server.connected = False

    result = await lock_manager.with_lock(lambda: "never", "lock:down", 1000, error_handler=errors.append)

    assert result is None
    assert len(errors) == 1
    assert isinstance(errors[0], StoreUnavailableError)


@pytest.mark.asyncio
async def test_more_callers_than_pooled_connections(lock_manager, fake_redis):
    errors = []
    callers = 5 * fake_redis.connection_pool.max_connections

    async def operation(i: int) -> int:
        return i

    results = await asyncio.gather(
        *(
            lock_manager.with_lock(lambda i=i: operation(i), f"lock:burst:{i}", 1000, error_handler=errors.append)
            for i in range(callers)
        )
    )

    assert errors == []
    assert results == list(range(callers))


@pytest.fixture
def failing_release(monkeypatch):
    outage = StoreUnavailableError("Redis unavailable during EVAL: connection reset")

    async def release(self, lock_key, owner_token):
        raise outage

    monkeypatch.setattr(AtomicScriptExecutor, "release", release)
    return outage


@pytest.mark.asyncio
async def test_operation_error_survives_failed_release(lock_manager, failing_release):
    errors = []
    boom = RuntimeError("boom")

    def operation():
        raise boom

    result = await lock_manager.with_lock(operation, "lock:both", 1000, error_handler=errors.append)

    assert result is None
    assert errors == [boom, failing_release]


@pytest.mark.asyncio
async def test_result_kept_when_only_release_fails(lock_manager, failing_release):
    errors = []

    result = await lock_manager.with_lock(lambda: "done", "lock:release", 1000, error_handler=errors.append)

    assert result == "done"
    assert errors == [failing_release]
