"""Free-tier rate limiting.

Each identity gets ``free_limit`` requests per fixed reset window. A record
whose reset time has passed is replaced by a fresh one, so this is a full
reset rather than a sliding window.

Store key format:
- ratelimit:{identity} - JSON-encoded RateLimitRecord, expiring at its reset time
"""

import time
from typing import Callable, assert_never

from paygate.app.core.logging import get_log_context, get_logger
from paygate.app.core.store import KeyValueStore
from paygate.app.exceptions import StoreError
from paygate.app.services.models import (
    Allowed,
    Anonymous,
    Authenticated,
    Exceeded,
    InsufficientBalance,
    RateLimitOutcome,
    RateLimitRecord,
    UserState,
)

logger = get_logger(__name__)

RATE_LIMIT_KEY_PREFIX = "ratelimit"


def rate_limit_key(identity: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}:{identity}"


class RateLimiter:
    """Enforces the free-tier quota of anonymous and non-billable callers.

    Authenticated accounts with a positive balance bypass the check; they
    are billed instead.
    """

    def __init__(
        self,
        store: KeyValueStore,
        free_limit: int = 10,
        reset_window_seconds: int = 3600,
        max_retries: int = 16,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize rate limiter.

        Args:
            store: Key-value store holding rate limit records
            free_limit: Free requests allowed per window
            reset_window_seconds: Length of the reset window
            max_retries: Compare-and-set attempts before raising StoreError
            clock: Returns the current epoch time in seconds
        """
        self._store = store
        self.free_limit = free_limit
        self.reset_window_seconds = reset_window_seconds
        self._max_retries = max_retries
        self._clock = clock

    async def check_and_consume(self, state: UserState) -> RateLimitOutcome:
        """Check the caller's quota and consume one request if allowed.

        Raises:
            StoreError: If the record cannot be read or written
        """
        match state:
            case Authenticated(account=account):
                return Allowed(remaining=account.balance)
            case Anonymous(identity=identity):
                return await self._check_free_tier(identity)
            case InsufficientBalance(account=account):
                return await self._check_free_tier(account.token)
            case _:
                assert_never(state)

    async def _check_free_tier(self, identity: str) -> RateLimitOutcome:
        key = rate_limit_key(identity)

        for _ in range(self._max_retries):
            raw = await self._store.get(key)
            now = self._clock()
            record = self._current_record(identity, key, raw, now)

            if record.count >= self.free_limit:
                logger.info(
                    "Free tier exhausted",
                    extra=get_log_context(identity=identity, reset_time=record.reset_time),
                )
                return Exceeded(reset_time=record.reset_time)

            updated = RateLimitRecord(
                identity=identity,
                count=record.count + 1,
                reset_time=record.reset_time,
            )
            ttl = max(record.reset_time - now, 1.0)
            if await self._store.compare_and_set(key, raw, updated.to_json(), ttl=ttl):
                return Allowed(remaining=self.free_limit - updated.count)

            logger.debug("Rate limit record changed concurrently, retrying")

        raise StoreError(
            f"Rate limit update did not settle after {self._max_retries} attempts",
            key=key,
        )

    def _current_record(
        self, identity: str, key: str, raw: str | None, now: float
    ) -> RateLimitRecord:
        """Return the live record, or a fresh zero-count one for a new window."""
        if raw is not None:
            record = RateLimitRecord.from_json(key, raw)
            if not record.is_expired(now):
                return record
        return RateLimitRecord(
            identity=identity,
            count=0,
            reset_time=now + self.reset_window_seconds,
        )
