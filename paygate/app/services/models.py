"""Data models for the request gatekeeper.

Records are immutable; updates go through ``dataclasses.replace`` and are
written back to the store as JSON.
"""

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from paygate.app.exceptions import RecordDecodeError


def decode_record(key: str, raw: str) -> dict[str, Any]:
    """Parse a stored JSON record, raising RecordDecodeError on garbage."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RecordDecodeError(key, str(e)) from e
    if not isinstance(data, dict):
        raise RecordDecodeError(key, "expected a JSON object")
    return data


@dataclass(frozen=True)
class Account:
    """A registered, billable account.

    Attributes:
        token: Bearer token identifying the account
        name: Display name
        email: Contact email
        balance: Remaining credits
        billing_customer_id: Customer reference at the payment provider
    """
    token: str
    name: str = ""
    email: str = ""
    balance: int = 0
    billing_customer_id: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, key: str, raw: str) -> "Account":
        data = decode_record(key, raw)
        try:
            return cls(
                token=str(data["token"]),
                name=data.get("name") or "",
                email=data.get("email") or "",
                balance=int(data.get("balance", 0)),
                billing_customer_id=data.get("billing_customer_id"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordDecodeError(key, f"invalid account: {e}") from e


@dataclass(frozen=True)
class RateLimitRecord:
    """Free-tier usage of one identity within the current reset window."""
    identity: str
    count: int
    reset_time: float  # Absolute epoch seconds

    def is_expired(self, now: float) -> bool:
        return now > self.reset_time

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, key: str, raw: str) -> "RateLimitRecord":
        data = decode_record(key, raw)
        try:
            return cls(
                identity=str(data["identity"]),
                count=int(data["count"]),
                reset_time=float(data["reset_time"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RecordDecodeError(key, f"invalid rate limit record: {e}") from e


# User state ---------------------------------------------------------------

@dataclass(frozen=True)
class Anonymous:
    identity: str
    kind: str = field(default="anonymous", init=False)


@dataclass(frozen=True)
class Authenticated:
    account: Account
    kind: str = field(default="authenticated", init=False)


@dataclass(frozen=True)
class InsufficientBalance:
    account: Account
    kind: str = field(default="insufficient_balance", init=False)


UserState = Union[Anonymous, Authenticated, InsufficientBalance]


# Rate limit outcome -------------------------------------------------------

@dataclass(frozen=True)
class Allowed:
    remaining: int


@dataclass(frozen=True)
class Exceeded:
    reset_time: float


RateLimitOutcome = Union[Allowed, Exceeded]


# Cache lookup -------------------------------------------------------------

@dataclass(frozen=True)
class CacheHit:
    value: str


@dataclass(frozen=True)
class CacheMiss:
    pass


CacheResult = Union[CacheHit, CacheMiss]


class ResponseFormat(str, Enum):
    JSON = "json"
    HTML = "html"
    MARKDOWN = "markdown"


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"
