"""Errors raised by the lock and counter layer."""


class RedisGuardError(Exception):
    """Base exception for redisguard operations."""

    pass


class StoreUnavailableError(RedisGuardError):
    """Raised when the Redis store cannot be reached."""

    pass


class SettingsError(RedisGuardError, ValueError):
    """Raised when a settings file fails validation."""

    pass


class LockTimeoutError(RedisGuardError, TimeoutError):
    """Raised when a lock could not be obtained within its wait budget."""

    def __init__(self, lock_key: str, expire_ms: int, attempts: int = 0) -> None:
        super().__init__(
            f"Error occurred while requesting a lock for {lock_key}. "
            f"Time expired after {expire_ms} ms ({attempts} attempts)."
        )
        self.lock_key = lock_key
        self.expire_ms = expire_ms
        self.attempts = attempts
