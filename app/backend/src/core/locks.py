"""Per-key locks serializing invoice regeneration."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache

import structlog
from redis import Redis
from redis.exceptions import LockError

from .config import get_settings
from .errors import ConflictError

LOGGER = structlog.get_logger(__name__)


@dataclass
class _LocalLock:
    lock: threading.Lock
    users: int = 0


_LOCAL_GUARD = threading.Lock()
_LOCAL_LOCKS: dict[str, _LocalLock] = {}


@lru_cache()
def get_redis_client() -> Redis:
    """Return the Redis client shared by locks and health checks."""

    settings = get_settings()
    return Redis.from_url(settings.redis_url)


def regeneration_lock_key(professional_id: int, month: int, year: int) -> str:
    """Return the lock name for one professional's monthly batch."""

    return f"invoice-regeneration:{professional_id}:{year:04d}-{month:02d}"


def _checkout_local_lock(key: str) -> _LocalLock:
    with _LOCAL_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            entry = _LocalLock(threading.Lock())
            _LOCAL_LOCKS[key] = entry
        entry.users += 1
        return entry


def _return_local_lock(key: str, entry: _LocalLock) -> None:
    with _LOCAL_GUARD:
        entry.users -= 1
        if entry.users == 0:
            _LOCAL_LOCKS.pop(key, None)


@contextmanager
def _redis_lock(key: str, *, timeout: int, wait: int) -> Iterator[None]:
    lock = get_redis_client().lock(key, timeout=timeout, blocking_timeout=wait)
    if not lock.acquire():
        raise ConflictError(
            "Geração de faturas já em andamento para este período",
            details={"lockKey": key},
        )
    try:
        yield
    finally:
        try:
            lock.release()
        except LockError as exc:
            LOGGER.warning("regeneration_lock_release_failed", key=key, error=str(exc))


@contextmanager
def _process_lock(key: str, *, wait: int) -> Iterator[None]:
    entry = _checkout_local_lock(key)
    try:
        if not entry.lock.acquire(timeout=wait):
            raise ConflictError(
                "Geração de faturas já em andamento para este período",
                details={"lockKey": key},
            )
        try:
            yield
        finally:
            entry.lock.release()
    finally:
        _return_local_lock(key, entry)


@contextmanager
def regeneration_lock(professional_id: int, month: int, year: int) -> Iterator[None]:
    """Hold the regeneration lock for ``(professional, month, year)``.

    Uses a Redis lock when Redis is enabled so that several API workers share
    it, otherwise a process-local lock. Raises :class:`ConflictError` when the
    lock cannot be obtained within ``regeneration_lock_wait`` seconds.
    """

    settings = get_settings()
    key = regeneration_lock_key(professional_id, month, year)
    if settings.redis_enabled:
        context = _redis_lock(
            key,
            timeout=settings.regeneration_lock_timeout,
            wait=settings.regeneration_lock_wait,
        )
    else:
        context = _process_lock(key, wait=settings.regeneration_lock_wait)

    with context:
        LOGGER.debug("regeneration_lock_acquired", key=key)
        yield


__all__ = ["get_redis_client", "regeneration_lock", "regeneration_lock_key"]
