"""Response caching service.

Design principles:
- Cache keys are shared by every caller (no identity in the key)
- Query parameter order does not change the key
- Caching is best-effort: store failures never block a response
"""

from typing import Iterable

from paygate.app.core.logging import get_logger
from paygate.app.core.store import KeyValueStore
from paygate.app.exceptions import StoreError
from paygate.app.services.models import CacheHit, CacheMiss, CacheResult, ResponseFormat

logger = get_logger(__name__)


class CacheManager:
    """Reads and writes cached response bodies."""

    def __init__(self, store: KeyValueStore, version: int = 1, ttl_seconds: int | None = 300) -> None:
        self._store = store
        self.version = version
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.ttl_seconds) and self.ttl_seconds > 0

    def make_key(
        self,
        pathname: str,
        query_params: Iterable[tuple[str, str]],
        response_format: ResponseFormat,
    ) -> str:
        """Build the cache key ``cache:v<version>:<path>:<sorted query>:<format>``.

        Parameter names sort case-insensitively (``a`` before ``B``); names
        differing only in case are ordered by code point.
        """
        sorted_params = "&".join(
            f"{key}={value}"
            for key, value in sorted(query_params, key=_param_sort_key)
        )
        return f"cache:v{self.version}:{pathname}:{sorted_params}:{response_format.value}"

    async def get(self, key: str) -> CacheResult:
        """Look up a cached body. A failing store counts as a miss."""
        try:
            value = await self._store.get(key)
        except StoreError as e:
            logger.warning(f"Cache get failed: {e}")
            return CacheMiss()

        if value:
            logger.debug(f"Cache hit for key: {key}")
            return CacheHit(value=value)
        return CacheMiss()

    async def set(self, key: str, value: str) -> bool:
        """Store a body under ``key``.

        Returns:
            False only when the store rejected the write. A disabled cache
            reports success without writing.
        """
        if not self.enabled:
            return True

        try:
            await self._store.set(key, value, ttl=self.ttl_seconds)
        except StoreError as e:
            logger.warning(f"Cache set failed: {e}")
            return False

        logger.debug(f"Cached response with TTL {self.ttl_seconds}s: {key}")
        return True


def _param_sort_key(item: tuple[str, str]) -> tuple[str, str]:
    return item[0].casefold(), item[0]
