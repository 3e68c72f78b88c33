"""Shared fixtures for paygate tests."""

import pytest

from paygate.app.core.config import Settings
from paygate.app.core.store import InMemoryStore
from paygate.app.services.accounts import AccountStore
from paygate.app.services.models import Account


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def accounts(store):
    return AccountStore(store)


@pytest.fixture
def make_settings():
    """Build Settings without reading .env files."""

    def _make(**overrides) -> Settings:
        values = {
            "free_rate_limit": 2,
            "free_rate_limit_reset_seconds": 3600,
            "price_credit": 10,
            "cache_seconds": 300,
            "payment_link": "https://pay.example.com/checkout",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def seed_account(accounts):
    """Store an account and return it."""

    async def _seed(token: str = "tok_alice", balance: int = 20, **fields) -> Account:
        return await accounts.put(Account(token=token, name="Alice", email="alice@example.com", balance=balance, **fields))

    return _seed
