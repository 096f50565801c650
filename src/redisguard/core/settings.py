"""Runtime settings loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from redis.asyncio import BlockingConnectionPool, Redis
from redis.asyncio.connection import SSLConnection

from .exceptions import SettingsError


class StoreSettings(BaseModel):
    """Connection settings for the shared Redis store."""

    url: Optional[str] = None  # takes precedence over host/port/database when set
    host: str = "localhost"
    port: int = 6379
    database: int = Field(default=0, ge=0)
    password: Optional[str] = None
    ssl: bool = False
    max_connections: int = Field(default=8, gt=0)
    socket_timeout_ms: Optional[int] = Field(default=None, gt=0)
    # how long a caller waits for a free pooled connection; None waits forever
    pool_timeout_ms: Optional[int] = Field(default=20000, gt=0)

    def create_pool(self, **overrides: Any) -> BlockingConnectionPool:
        """Connection pool that queues callers once ``max_connections`` are in use."""
        options: dict = {
            "max_connections": self.max_connections,
            "timeout": self.pool_timeout_ms / 1000 if self.pool_timeout_ms else None,
            "socket_timeout": self.socket_timeout_ms / 1000 if self.socket_timeout_ms else None,
            "decode_responses": True,
        }
        if self.url:
            options.update(overrides)
            return BlockingConnectionPool.from_url(self.url, **options)
        options.update(
            host=self.host,
            port=self.port,
            db=self.database,
            password=self.password,
        )
        if self.ssl:
            options["connection_class"] = SSLConnection
        options.update(overrides)
        return BlockingConnectionPool(**options)

    def create_client(self, **overrides: Any) -> Redis:
        return Redis(connection_pool=self.create_pool(**overrides))


class LockSettings(BaseModel):
    retry_interval_ms: int = Field(default=500, gt=0)
    default_expire_ms: int = Field(default=30000, ge=0)


class RedisGuardSettings(BaseModel):
    store: StoreSettings = Field(default_factory=StoreSettings)
    lock: LockSettings = Field(default_factory=LockSettings)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @classmethod
    def from_file(cls, path: Path) -> "RedisGuardSettings":
        data = yaml.safe_load(path.read_text()) or {}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SettingsError(f"Invalid redisguard settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "RedisGuardSettings":
        data: dict = {"store": {}, "lock": {}}
        if url := os.getenv("REDIS_URL"):
            data["store"]["url"] = url
        if interval := os.getenv("REDISGUARD_RETRY_INTERVAL_MS"):
            data["lock"]["retry_interval_ms"] = interval
        if level := os.getenv("REDISGUARD_LOG_LEVEL"):
            data["log_level"] = level
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SettingsError(f"Invalid redisguard environment: {exc}") from exc
