"""Data models shared across the lock and counter layer."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum


class LockState(str, Enum):
    """States a single acquisition attempt moves through."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    HELD = "held"
    TIMED_OUT = "timed_out"
    RELEASED = "released"


def ttl_for_budget(expire_ms: int) -> int:
    """Whole-second TTL for a wait budget given in milliseconds (minimum 1)."""
    return max(1, expire_ms // 1000)


@dataclass(slots=True)
class AcquisitionAttempt:
    """In-process bookkeeping for one acquire scope. Never persisted."""

    lock_key: str
    expire_ms: int
    retry_interval_ms: int
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    waited_ms: int = 0
    attempts: int = 0
    state: LockState = LockState.IDLE

    @property
    def ttl_seconds(self) -> int:
        return ttl_for_budget(self.expire_ms)

    @property
    def remaining_ms(self) -> int:
        return self.expire_ms - self.waited_ms

    @property
    def max_attempts(self) -> int:
        # One initial attempt, then one more per interval while budget remains.
        return math.ceil(max(self.expire_ms, 0) / self.retry_interval_ms) + 1
