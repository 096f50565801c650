"""Distributed locking and atomic counter primitives."""

from .counters import CounterService
from .exceptions import LockTimeoutError, RedisGuardError, SettingsError, StoreUnavailableError
from .locks import AsyncLock, LockManager
from .locks_redis import RedisLockManager
from .models import AcquisitionAttempt, LockState
from .scripts import AtomicScriptExecutor
from .settings import LockSettings, RedisGuardSettings, StoreSettings
from .store import StoreClient

__all__ = [
    "AcquisitionAttempt",
    "AsyncLock",
    "AtomicScriptExecutor",
    "CounterService",
    "LockManager",
    "LockSettings",
    "LockState",
    "LockTimeoutError",
    "RedisGuardError",
    "RedisGuardSettings",
    "RedisLockManager",
    "SettingsError",
    "StoreClient",
    "StoreSettings",
    "StoreUnavailableError",
]
