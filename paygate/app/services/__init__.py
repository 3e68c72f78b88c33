"""Services package for paygate.

This package provides:
- Request classification and response-format negotiation
- User state resolution, free-tier rate limiting and metered billing
- Response caching and rendering
- The orchestrator that chains them (import it from
  ``paygate.app.services.orchestrator``)
"""

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
    RateLimitRecord,
    ResponseFormat,
)
from paygate.app.services.rate_limiter import RateLimiter
from paygate.app.services.request_classifier import (
    RequestDescriptor,
    classify_request,
    negotiate_format,
)
from paygate.app.services.response_cache import CacheManager
from paygate.app.services.response_composer import ResponseComposer, markdown_to_html
from paygate.app.services.user_state import UserStateResolver

__all__ = [
    # Models
    "Account",
    "RateLimitRecord",
    "Anonymous",
    "Authenticated",
    "InsufficientBalance",
    "Allowed",
    "Exceeded",
    "CacheHit",
    "CacheMiss",
    "CacheStatus",
    "ResponseFormat",
    # Components
    "AccountStore",
    "Biller",
    "CacheManager",
    "RateLimiter",
    "RequestDescriptor",
    "ResponseComposer",
    "UserStateResolver",
    "classify_request",
    "markdown_to_html",
    "negotiate_format",
]
