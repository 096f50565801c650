"""Abstract interfaces for distributed locks and guarded execution."""

from __future__ import annotations

import abc
import inspect
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

from .exceptions import LockTimeoutError
from redisguard.utils.logging import get_logger


T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]
ErrorHandler = Callable[[Exception], Union[None, Awaitable[None]]]

logger = get_logger("LockManager")


class AsyncLock(Protocol):
    @property
    def attempts(self) -> int: ...

    async def __aenter__(self) -> bool: ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


def _ignore_error(exc: Exception) -> None:
    return None


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class LockManager(abc.ABC):
    @abc.abstractmethod
    async def acquire_lock(self, lock_key: str, owner_token: str, ttl_seconds: int) -> bool:  # pragma: no cover - interface
        """Single non-blocking attempt to take ``lock_key`` for ``owner_token``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def release_lock(self, lock_key: str, owner_token: str) -> bool:  # pragma: no cover - interface
        """Release ``lock_key`` if ``owner_token`` still owns it."""
        raise NotImplementedError

    @abc.abstractmethod
    def lock(self, lock_key: str, expire_ms: int = 30000) -> AsyncLock:  # pragma: no cover - interface
        """Return an async context manager that waits up to ``expire_ms`` for the lock.

        Entering yields True when the lock is held. Leaving releases it if held.
        """
        raise NotImplementedError

    async def with_lock(
        self,
        operation: Operation[T],
        lock_key: str,
        expire_ms: int,
        *,
        error_handler: Optional[ErrorHandler] = None,
    ) -> Optional[T]:
        """Run ``operation`` once while holding ``lock_key``.

        The lock is released on every path that acquired it, including when
        ``operation`` raises. Failures are never raised from here: a lock
        timeout (as :class:`LockTimeoutError`), an error raised by
        ``operation`` and a store failure are all passed to ``error_handler``
        and the call returns None. If only the release fails, the operation's
        result is still returned and the release error goes to the handler.
        When both the operation and the release fail, the handler sees the
        operation error first.

        Without an ``error_handler`` those failures are silently dropped and
        the caller only sees None. Pass a handler that re-raises if you need
        the exception.
        """
        handler = error_handler or _ignore_error
        guard = self.lock(lock_key, expire_ms)
        acquired = False
        result: Optional[T] = None
        failure: Optional[Exception] = None
        try:
            async with guard as held:
                acquired = held
                if held:
                    try:
                        result = await _resolve(operation())
                    except Exception as exc:
                        failure = exc
        except Exception as exc:
            # the store failed during acquire or release
            logger.debug("Store failure while guarding %s: %r", lock_key, exc)
            if failure is not None:
                await _resolve(handler(failure))
            await _resolve(handler(exc))
            return result

        if failure is not None:
            logger.debug("Guarded operation on %s failed: %r", lock_key, failure)
            await _resolve(handler(failure))
            return None
        if not acquired:
            await _resolve(handler(LockTimeoutError(lock_key, expire_ms, guard.attempts)))
            return None
        return result
