"""End-to-end decision pipeline of the gatekeeper.

Stages:

    Init -> CacheCheck -> (hit) Respond
                       -> (miss) ClassifyUser -> RateLimitCheck
    RateLimitCheck -> (exceeded) PaymentRequired
                   -> (allowed) Charge
    Charge -> (failed) PaymentRequired
           -> (ok) InvokeHandler -> CacheStore -> Respond

Respond and PaymentRequired are terminal. A cache hit is free: it skips user
resolution, rate limiting and billing. OPTIONS requests are answered before
any stage runs.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Optional, assert_never

from starlette.requests import Request
from starlette.responses import Response

from paygate.app.core.config import Settings
from paygate.app.core.logging import get_log_context, get_logger
from paygate.app.core.store import KeyValueStore
from paygate.app.exceptions import BillingError, HandlerError, HandlerTimeoutError, StoreError
from paygate.app.handlers import Handler, HandlerContext, HandlerResult
from paygate.app.services.accounts import AccountStore
from paygate.app.services.billing import Biller
from paygate.app.services.models import (
    Account,
    Allowed,
    Anonymous,
    Authenticated,
    CacheHit,
    CacheMiss,
    CacheStatus,
    Exceeded,
    InsufficientBalance,
    UserState,
)
from paygate.app.services.rate_limiter import RateLimiter
from paygate.app.services.request_classifier import (
    classify_starlette_request,
    negotiate_format,
)
from paygate.app.services.response_cache import CacheManager
from paygate.app.services.response_composer import ResponseComposer
from paygate.app.services.user_state import UserStateResolver

logger = get_logger(__name__)

RATE_LIMIT_FAILED_MESSAGE = "Rate limit check failed"
INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance. Please add funds to your account."

# Set by the composer from the negotiated format
_COMPOSED_HEADERS = frozenset(("content-type", "content-length"))


@dataclass(frozen=True)
class HandlerOutput:
    """Handler result reduced to what the gateway renders and caches."""
    body: str
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)


class Orchestrator:
    """Composes the gatekeeper components around one business handler."""

    def __init__(self, store: KeyValueStore, config: Settings, handler: Handler) -> None:
        self.store = store
        self.config = config
        self.handler = handler

        accounts = AccountStore(store)
        self.resolver = UserStateResolver(accounts, config.anonymous_client_id)
        self.rate_limiter = RateLimiter(
            store,
            free_limit=config.free_rate_limit,
            reset_window_seconds=config.free_rate_limit_reset_seconds,
            max_retries=config.cas_max_retries,
        )
        self.biller = Biller(accounts, max_retries=config.cas_max_retries)
        self.cache = CacheManager(store, version=config.cache_version, ttl_seconds=config.cache_seconds)
        self.composer = ResponseComposer(config)

    async def handle(self, request: Request) -> Response:
        """Run the pipeline for one request. Always returns a response."""
        if request.method == "OPTIONS":
            return self.composer.options_response()

        descriptor = classify_starlette_request(request)
        response_format = negotiate_format(descriptor)
        cache_key = self.cache.make_key(
            descriptor.pathname, descriptor.query_params, response_format
        )

        match await self.cache.get(cache_key):
            case CacheHit(value=cached):
                logger.debug("Serving cached response", extra=get_log_context(cache_status="HIT"))
                return self.composer.compose(cached, response_format, CacheStatus.HIT).to_response()
            case CacheMiss():
                pass

        state = await self.resolver.resolve(descriptor.auth_token)
        log_context = get_log_context(identity=_identity(state), user_state=state.kind)

        try:
            outcome = await self.rate_limiter.check_and_consume(state)
        except StoreError as e:
            logger.error(f"Rate limit check failed: {e}", extra=log_context)
            return self.composer.payment_required(RATE_LIMIT_FAILED_MESSAGE)

        match outcome:
            case Exceeded():
                return self.composer.payment_required(
                    f"Free rate limit exceeded. Limit: {self.config.free_rate_limit} "
                    f"requests per {self.config.free_rate_limit_reset_seconds} seconds."
                )
            case Allowed():
                pass
            case _:
                assert_never(outcome)

        try:
            account = await self._charge(state)
        except (BillingError, StoreError) as e:
            logger.info(f"Charge failed: {e}", extra=log_context)
            return self.composer.payment_required(INSUFFICIENT_BALANCE_MESSAGE)

        context = HandlerContext(account=account, store=self.store, settings=self.config)
        try:
            output = await self._invoke_handler(request, context)
        except HandlerError as e:
            return self.composer.error_response(e)

        # Only plain 200 bodies are replayable from the cache
        if output.status_code == 200:
            await self.cache.set(cache_key, output.body)
        return self.composer.compose(
            output.body,
            response_format,
            CacheStatus.MISS,
            output.status_code,
            extra_headers=output.headers,
        ).to_response()

    async def _charge(self, state: UserState) -> Optional[Account]:
        """Bill paying accounts; other callers pass through unbilled."""
        match state:
            case Authenticated(account=account):
                return await self.biller.charge(account.token, self.config.price_credit)
            case InsufficientBalance(account=account):
                return account
            case Anonymous():
                return None
            case _:
                assert_never(state)

    async def _invoke_handler(
        self, request: Request, context: HandlerContext
    ) -> HandlerOutput:
        timeout = self.config.handler_timeout_seconds
        started = time.perf_counter()
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                result = await self.handler(request, context)
        except TimeoutError as e:
            if deadline.expired():
                logger.error(f"Handler timed out after {timeout:g}s")
                raise HandlerTimeoutError(timeout) from e
            raise self._handler_error(e) from e
        except Exception as e:
            raise self._handler_error(e) from e

        logger.debug(
            "Handler finished",
            extra={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
        )
        try:
            return _read_result(result)
        except (TypeError, ValueError) as e:
            # Unserialisable dict/list or a body that is not text
            raise self._handler_error(e) from e

    def _handler_error(self, exc: Exception) -> HandlerError:
        logger.error("Handler failed", exc_info=exc)
        message = f"Handler error: {exc}" if self.config.debug else "Handler error"
        return HandlerError(message)


def _identity(state: UserState) -> str:
    match state:
        case Anonymous(identity=identity):
            return identity
        case Authenticated(account=account) | InsufficientBalance(account=account):
            return account.token
        case _:
            assert_never(state)


def _read_result(result: HandlerResult) -> HandlerOutput:
    """Turn a handler result into body text, status code and extra headers.

    Raises:
        HandlerError: For streaming responses and unsupported result types
        TypeError: If a dict/list result is not JSON-serialisable
        UnicodeDecodeError: If a Response body is not text in its charset
    """
    if isinstance(result, Response):
        body = getattr(result, "body", None)
        if body is None:
            raise HandlerError("Streaming handler responses are not supported")
        headers = {
            key: value
            for key, value in result.headers.items()
            if key.lower() not in _COMPOSED_HEADERS
        }
        return HandlerOutput(
            body=bytes(body).decode(result.charset),
            status_code=result.status_code,
            headers=headers,
        )
    if isinstance(result, str):
        return HandlerOutput(body=result)
    if isinstance(result, (dict, list)):
        return HandlerOutput(body=json.dumps(result, ensure_ascii=False))
    raise HandlerError(f"Unsupported handler result type: {type(result).__name__}")
