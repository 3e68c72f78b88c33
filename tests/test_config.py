"""Tests for Settings loading and validation."""

import pytest
from pydantic import ValidationError

from paygate.app.core.config import Settings


class TestSettingsDefaults:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.free_rate_limit == 10
        assert settings.free_rate_limit_reset_seconds == 3600
        assert settings.price_credit == 1
        assert settings.cache_seconds == 300
        assert settings.cache_version == 1
        assert settings.store_backend == "memory"
        assert settings.handler_path == "paygate.app.handlers:hello_world"


class TestSettingsEnvironment:
    """Settings are read from environment variables."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FREE_RATE_LIMIT", "5")
        monkeypatch.setenv("PRICE_CREDIT", "3")
        monkeypatch.setenv("STORE_BACKEND", "redis")
        settings = Settings(_env_file=None)
        assert settings.free_rate_limit == 5
        assert settings.price_credit == 3
        assert settings.store_backend == "redis"

    def test_stripe_payment_link_alias(self, monkeypatch):
        monkeypatch.setenv("STRIPE_PAYMENT_LINK", "https://buy.stripe.com/test")
        assert Settings(_env_file=None).payment_link == "https://buy.stripe.com/test"


class TestSettingsValidation:
    """Invalid values are rejected at startup."""

    @pytest.mark.parametrize(
        "field,value",
        [
            ("free_rate_limit", -1),
            ("price_credit", -1),
            ("cache_seconds", -5),
            ("free_rate_limit_reset_seconds", 0),
            ("cas_max_retries", 0),
            ("handler_timeout_seconds", 0),
            ("handler_path", "no_colon_here"),
            ("store_backend", "postgres"),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_zero_price_and_limit_are_allowed(self):
        settings = Settings(_env_file=None, price_credit=0, free_rate_limit=0, cache_seconds=0)
        assert settings.price_credit == 0
        assert settings.free_rate_limit == 0
