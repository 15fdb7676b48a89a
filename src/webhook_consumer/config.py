"""Configuration for the webhook consumer service.

All configuration is loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webhook_consumer.webhooks.signature import DEFAULT_HEADER_PREFIX, decode_secret

__all__ = ["DEFAULT_CONSUMERS", "ConsumerConfig"]

DEFAULT_CONSUMERS: list[str] = ["apolo", "artemis", "cronos", "town"]


class ConsumerConfig(BaseSettings):
    """Webhook consumer configuration.

    Environment Variables:
        WEBHOOK_CONSUMER_PRODUCER_BASE_URL: Producer API root (default: http://localhost:5000)
        WEBHOOK_CONSUMER_PUBLIC_BASE_URL: Externally reachable URL of this service
        WEBHOOK_CONSUMER_STATIC_SECRET: One pre-shared secret for every endpoint
        WEBHOOK_CONSUMER_HEADER_PREFIX: Signature header prefix (default: svix)
        WEBHOOK_CONSUMER_SIGNATURE_TOLERANCE: Allowed timestamp skew in seconds,
            0 disables (default: 300)
        WEBHOOK_CONSUMER_PRODUCER_TIMEOUT: Producer HTTP timeout in seconds (default: 30)
        WEBHOOK_CONSUMER_CONSUMERS: JSON list of consumer names; [] accepts any
        WEBHOOK_CONSUMER_HOST / WEBHOOK_CONSUMER_PORT: Bind address
        WEBHOOK_CONSUMER_LOG_LEVEL: Logging level (default: INFO)
        WEBHOOK_CONSUMER_METRICS_ENABLED / WEBHOOK_CONSUMER_METRICS_PORT: Prometheus

    Example:
        >>> config = ConsumerConfig()
        >>> config.header_prefix
        'svix'
        >>> config = ConsumerConfig(static_secret="whsec_AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA")
    """

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_CONSUMER_",
        env_file=".env",
        extra="ignore",
    )

    # Producer
    producer_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the producer API",
    )
    producer_timeout: float = Field(
        default=30,
        description="HTTP timeout for producer calls in seconds",
        gt=0,
        le=300,
    )

    # Callbacks
    public_base_url: str | None = Field(
        default=None,
        description="Externally reachable base URL used to build callback URLs",
    )
    consumers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONSUMERS),
        description="Known consumer names (empty list accepts any name)",
    )

    # Verification
    static_secret: str | None = Field(
        default=None,
        description="Pre-shared secret used for every endpoint instead of per-subscription secrets",
    )
    header_prefix: str = Field(
        default=DEFAULT_HEADER_PREFIX,
        description="Prefix of the id/timestamp/signature headers",
        min_length=1,
    )
    signature_tolerance: int = Field(
        default=300,
        description="Maximum timestamp skew in seconds (0 disables the check)",
        ge=0,
    )

    # Server
    app_name: str = Field(default="Webhook Consumer", description="Application title")
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8000, description="Bind port", ge=1, le=65535)
    log_level: str = Field(default="INFO", description="Logging level")

    # Observability
    metrics_enabled: bool = Field(default=True, description="Collect Prometheus metrics")
    metrics_port: int | None = Field(
        default=None,
        description="Expose metrics on this port (disabled when unset)",
        ge=1,
        le=65535,
    )

    @field_validator("header_prefix")
    @classmethod
    def _lower_prefix(cls, value: str) -> str:
        return value.lower()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("consumers")
    @classmethod
    def _normalise_consumers(cls, value: list[str]) -> list[str]:
        return [name.strip().lower() for name in value if name.strip()]

    @field_validator("static_secret")
    @classmethod
    def _check_static_secret(cls, value: str | None) -> str | None:
        if not value:
            return None
        decode_secret(value)
        return value
