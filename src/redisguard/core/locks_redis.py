"""Redis-based distributed lock with bounded polling acquisition."""

from __future__ import annotations

import os
from typing import Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_fixed

from .locks import AsyncLock, LockManager
from .models import AcquisitionAttempt, LockState
from .scripts import AtomicScriptExecutor
from .store import StoreClient
from redisguard.utils.logging import get_logger


DEFAULT_RETRY_INTERVAL_MS = 500

logger = get_logger("RedisLockManager")


class _RedisLock:
    def __init__(self, executor: AtomicScriptExecutor, key: str, expire_ms: int, retry_interval_ms: int) -> None:
        self._executor = executor
        self._attempt = AcquisitionAttempt(
            lock_key=key,
            expire_ms=expire_ms,
            retry_interval_ms=retry_interval_ms,
        )

    @property
    def attempt(self) -> AcquisitionAttempt:
        return self._attempt

    @property
    def attempts(self) -> int:
        return self._attempt.attempts

    @property
    def state(self) -> LockState:
        return self._attempt.state

    async def _try_acquire(self) -> bool:
        attempt = self._attempt
        attempt.state = LockState.ATTEMPTING
        attempt.attempts += 1
        return await self._executor.acquire(attempt.lock_key, attempt.request_id, attempt.ttl_seconds)

    def _before_wait(self, retry_state: RetryCallState) -> None:
        attempt = self._attempt
        attempt.state = LockState.WAITING
        attempt.waited_ms += attempt.retry_interval_ms
        logger.debug(
            "Lock %s busy; waiting %d ms (%d ms of budget left after this wait)",
            attempt.lock_key,
            attempt.retry_interval_ms,
            max(attempt.remaining_ms, 0),
        )

    async def __aenter__(self) -> bool:
        attempt = self._attempt
        if attempt.state is not LockState.IDLE:
            raise RuntimeError(f"Lock context for {attempt.lock_key} cannot be entered twice")
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempt.max_attempts),
            wait=wait_fixed(attempt.retry_interval_ms / 1000),
            retry=retry_if_result(lambda acquired: not acquired),
            before_sleep=self._before_wait,
            retry_error_callback=lambda retry_state: False,
        )
        held = await retrying(self._try_acquire)
        if held:
            attempt.state = LockState.HELD
            logger.debug("Acquired lock %s after %d attempt(s)", attempt.lock_key, attempt.attempts)
        else:
            attempt.state = LockState.TIMED_OUT
            logger.warning(
                "Timed out waiting for lock %s after %d attempt(s) (%d ms)",
                attempt.lock_key,
                attempt.attempts,
                attempt.waited_ms,
            )
        return held

    async def __aexit__(self, exc_type, exc, tb) -> None:
        attempt = self._attempt
        if attempt.state is not LockState.HELD:
            return
        # release only if token matches
        try:
            released = await self._executor.release(attempt.lock_key, attempt.request_id)
        finally:
            attempt.state = LockState.RELEASED
        if not released:
            logger.debug("Lock %s was no longer owned at release (expired or taken over)", attempt.lock_key)


class RedisLockManager(LockManager):
    def __init__(
        self,
        store: Optional[StoreClient] = None,
        *,
        url: Optional[str] = None,
        retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS,
    ) -> None:
        if retry_interval_ms <= 0:
            raise ValueError("retry_interval_ms must be positive")
        self._store = store or StoreClient.from_url(url or os.getenv("REDIS_URL", "redis://localhost:6379/0"))
        self._executor = AtomicScriptExecutor(self._store)
        self._retry_interval_ms = retry_interval_ms

    async def acquire_lock(self, lock_key: str, owner_token: str, ttl_seconds: int) -> bool:
        return await self._executor.acquire(lock_key, owner_token, ttl_seconds)

    async def release_lock(self, lock_key: str, owner_token: str) -> bool:
        return await self._executor.release(lock_key, owner_token)

    def lock(self, lock_key: str, expire_ms: int = 30000) -> AsyncLock:
        if expire_ms < 0:
            raise ValueError(f"expire_ms must not be negative, got {expire_ms}")
        return _RedisLock(self._executor, lock_key, expire_ms, self._retry_interval_ms)
