from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Pricing and free tier
    price_credit: int = 1  # Credits charged per billed request
    free_rate_limit: int = 10  # Free requests per reset window
    free_rate_limit_reset_seconds: int = 3600
    anonymous_client_id: str = "anonymous"  # Identity used when no token is sent

    # Response cache
    cache_version: int = 1  # Bump to invalidate every cached response
    cache_seconds: int = 300  # 0 disables caching

    # Business handler
    handler_path: str = "paygate.app.handlers:hello_world"
    handler_timeout_seconds: float = 30.0

    # Checkout link embedded in 402 responses
    payment_link: str = Field(
        default="",
        validation_alias=AliasChoices("payment_link", "stripe_payment_link"),
    )

    # Key-value store settings
    store_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    cas_max_retries: int = 16  # Compare-and-set attempts before giving up

    # Admin API; empty disables every admin route
    admin_token: str = ""

    # CORS headers attached to every gated response
    cors_allow_origin: str = "*"
    cors_allow_methods: str = "GET, POST, PUT, DELETE, OPTIONS"
    cors_allow_headers: str = "Content-Type, Authorization"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("free_rate_limit", "price_credit", "cache_seconds", "cache_version")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate pricing and cache values are not negative."""
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator("free_rate_limit_reset_seconds", "cas_max_retries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate window and retry values are at least 1."""
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("handler_timeout_seconds")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate handler timeout is positive."""
        if v <= 0:
            raise ValueError("handler_timeout_seconds must be positive")
        return v

    @field_validator("handler_path")
    @classmethod
    def validate_handler_path(cls, v: str) -> str:
        if ":" not in v:
            raise ValueError("handler_path must look like 'package.module:attribute'")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
