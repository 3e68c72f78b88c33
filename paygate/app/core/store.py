"""Key-value store abstraction for paygate.

Accounts, rate-limit records and cached responses all live in one store.
Provides a pluggable backend system with in-memory and Redis implementations.
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from paygate.app.core.config import Settings
from paygate.app.core.logging import get_logger
from paygate.app.core.redis_lua import COMPARE_AND_SET_SCRIPT
from paygate.app.exceptions import StoreError

logger = get_logger(__name__)


@dataclass
class _StoreEntry:
    """Internal store entry with TTL tracking."""

    value: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired."""
        if self.expires_at is None:
            return False
        return now > self.expires_at


class KeyValueStore(ABC):
    """Abstract base class for key-value stores.

    Values are text (JSON for structured records). Implementations raise
    StoreError when the backend cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve a value, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        """Store a value.

        Args:
            key: The record key.
            value: The value to store.
            ttl: Time-to-live in seconds; None or 0 keeps the value forever.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value. Removing a missing key is not an error."""

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl: float | None = None,
    ) -> bool:
        """Atomically replace a value if it still equals ``expected``.

        Args:
            key: The record key.
            expected: The raw value previously read, or None if the key
                must currently be absent.
            value: The new value.
            ttl: Time-to-live in seconds for the new value.

        Returns:
            True if the value was written, False if another writer got there first.
        """

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryStore(KeyValueStore):
    """In-memory store with TTL support.

    This is the default backend. Data is lost when the application restarts
    and is not shared between processes.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, _StoreEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _expires_at(self, ttl: float | None) -> float | None:
        return self._clock() + ttl if ttl else None

    def _current(self, key: str) -> str | None:
        # Caller must hold the lock
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._data[key]
            return None
        return entry.value

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._current(key)

    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        async with self._lock:
            self._data[key] = _StoreEntry(value=value, expires_at=self._expires_at(ttl))

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl: float | None = None,
    ) -> bool:
        async with self._lock:
            if self._current(key) != expected:
                return False
            self._data[key] = _StoreEntry(value=value, expires_at=self._expires_at(ttl))
            return True

    async def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._data.items() if entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._data[key]
            return len(expired_keys)


class RedisStore(KeyValueStore):
    """Redis-backed store shared by every gateway instance.

    Compare-and-set runs as a Lua script so the check and the write happen
    atomically on the server.

    Example:
        >>> store = RedisStore("redis://localhost:6379/0")
        >>> await store.set("key", "value", ttl=300)
    """

    def __init__(self, redis_url: str | None = None, client: Any | None = None) -> None:
        self._redis_url = redis_url
        self._redis = client

    def _get_client(self) -> Any:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    @staticmethod
    def _ttl_seconds(ttl: float | None) -> int:
        # Redis expiries are whole seconds
        return max(1, math.ceil(ttl)) if ttl else 0

    async def get(self, key: str) -> str | None:
        try:
            value = await self._get_client().get(key)
        except RedisError as e:
            raise StoreError(f"Redis GET failed: {e}", key=key) from e
        if isinstance(value, bytes):
            value = value.decode()
        return value

    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        seconds = self._ttl_seconds(ttl)
        try:
            if seconds:
                await self._get_client().set(key, value, ex=seconds)
            else:
                await self._get_client().set(key, value)
        except RedisError as e:
            raise StoreError(f"Redis SET failed: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(key)
        except RedisError as e:
            raise StoreError(f"Redis DEL failed: {e}", key=key) from e

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl: float | None = None,
    ) -> bool:
        try:
            result = await self._get_client().eval(
                COMPARE_AND_SET_SCRIPT,
                1,  # Number of keys
                key,  # KEYS[1]
                expected or "",  # ARGV[1]
                "0" if expected is None else "1",  # ARGV[2]
                value,  # ARGV[3]
                self._ttl_seconds(ttl),  # ARGV[4]
            )
        except RedisError as e:
            raise StoreError(f"Redis compare-and-set failed: {e}", key=key) from e
        return bool(int(result))

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_store(config: Settings) -> KeyValueStore:
    """Create the store backend selected by ``config.store_backend``."""
    if config.store_backend == "redis":
        logger.info("Using Redis key-value store")
        return RedisStore(config.redis_url)
    logger.info("Using in-memory key-value store")
    return InMemoryStore()
