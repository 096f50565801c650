"""CLI entrypoint for lock and counter operations against Redis."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from redisguard.core.counters import CounterService
from redisguard.core.exceptions import LockTimeoutError, StoreUnavailableError
from redisguard.core.locks_redis import RedisLockManager
from redisguard.core.settings import RedisGuardSettings
from redisguard.core.store import StoreClient
from redisguard.utils.logging import get_logger, set_log_level


logger = get_logger("CLI")

# sysexits EX_TEMPFAIL: the lock was busy for the whole budget
EXIT_LOCK_TIMEOUT = 75


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="redisguard", description="Distributed locks and counters on Redis.")
    parser.add_argument("--config", type=Path, default=None, help="Path to settings YAML (defaults to environment)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured log level",
    )
    sub = parser.add_subparsers(dest="action", required=True)

    p = sub.add_parser("get", help="Print the JSON value stored at KEY")
    p.add_argument("key")

    p = sub.add_parser("set", help="Store VALUE (parsed as JSON when possible) at KEY")
    p.add_argument("key")
    p.add_argument("value")
    p.add_argument("--ttl", type=int, default=None, help="Expiry in seconds")

    p = sub.add_parser("del", help="Delete KEY")
    p.add_argument("key")

    p = sub.add_parser("keys", help="List keys matching PATTERN")
    p.add_argument("pattern", nargs="?", default="*")

    p = sub.add_parser("ttl", help="Remaining expiry of KEY in seconds")
    p.add_argument("key")

    p = sub.add_parser("incr", help="Atomically add to a counter and print the new value")
    p.add_argument("key")
    p.add_argument("--by", type=int, default=1)

    p = sub.add_parser("decr", help="Atomically decrement a counter")
    p.add_argument("key")

    p = sub.add_parser("getset", help="Replace a counter value and print the previous one")
    p.add_argument("key")
    p.add_argument("value", type=int)

    p = sub.add_parser("init", help="Set a counter's starting value")
    p.add_argument("key")
    p.add_argument("value", type=int)

    p = sub.add_parser("reset", help="Set a counter back to 0")
    p.add_argument("key")

    # options go before KEY: everything after KEY belongs to the command
    p = sub.add_parser("run", help="Run a command while holding a lock")
    p.add_argument("key")
    p.add_argument("--expire-ms", type=int, default=None, help="Wait budget and lock lifetime in ms")
    p.add_argument("command", nargs=argparse.REMAINDER, help="Command to run, after --")
    return parser


async def _run_locked(manager: RedisLockManager, key: str, expire_ms: int, command: List[str]) -> int:
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        logger.error("No command given to run under lock %s", key)
        return 2

    exit_code = 1

    async def operation() -> int:
        proc = await asyncio.create_subprocess_exec(*command)
        return await proc.wait()

    def on_error(exc: Exception) -> None:
        nonlocal exit_code
        if isinstance(exc, LockTimeoutError):
            exit_code = EXIT_LOCK_TIMEOUT
            logger.error("%s", exc)
        else:
            logger.error("Command under lock %s failed: %s", key, exc)

    result = await manager.with_lock(operation, key, expire_ms, error_handler=on_error)
    return exit_code if result is None else result


async def run(args: argparse.Namespace, *, store: StoreClient, settings: RedisGuardSettings) -> int:
    counters = CounterService(store)
    action = args.action

    if action == "get":
        print(json.dumps(await store.get(args.key)))
    elif action == "set":
        await store.set(args.key, _parse_value(args.value), ttl_seconds=args.ttl)
    elif action == "del":
        if not await store.delete(args.key):
            logger.info("Key %s did not exist", args.key)
    elif action == "keys":
        for key in sorted(await store.keys(args.pattern)):
            print(key)
    elif action == "ttl":
        print(await store.get_expire(args.key))
    elif action == "incr":
        print(await counters.add_and_get(args.key, args.by))
    elif action == "decr":
        print(await counters.decrement(args.key))
    elif action == "getset":
        print(await counters.get_and_set(args.key, args.value))
    elif action == "init":
        print(await counters.initialize(args.key, args.value))
    elif action == "reset":
        print(await counters.reset(args.key))
    elif action == "run":
        manager = RedisLockManager(store, retry_interval_ms=settings.lock.retry_interval_ms)
        expire_ms = args.expire_ms if args.expire_ms is not None else settings.lock.default_expire_ms
        return await _run_locked(manager, args.key, expire_ms, args.command)
    return 0


async def _main(args: argparse.Namespace, settings: RedisGuardSettings) -> int:
    store = StoreClient(settings.store.create_client())
    try:
        return await run(args, store=store, settings=settings)
    finally:
        await store.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = RedisGuardSettings.from_file(args.config) if args.config else RedisGuardSettings.from_env()
    set_log_level(args.log_level or settings.log_level)
    try:
        return asyncio.run(_main(args, settings))
    except StoreUnavailableError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
