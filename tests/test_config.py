"""Tests for ConsumerConfig environment loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tests.helpers import FIXTURE_SECRET
from webhook_consumer.config import DEFAULT_CONSUMERS, ConsumerConfig


class TestConsumerConfig:
    """Tests for configuration defaults and overrides."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults match the documented values."""
        for name in ("PRODUCER_BASE_URL", "STATIC_SECRET", "CONSUMERS"):
            monkeypatch.delenv(f"WEBHOOK_CONSUMER_{name}", raising=False)

        config = ConsumerConfig()

        assert config.producer_base_url == "http://localhost:5000"
        assert config.public_base_url is None
        assert config.static_secret is None
        assert config.header_prefix == "svix"
        assert config.signature_tolerance == 300
        assert config.producer_timeout == 30
        assert config.consumers == DEFAULT_CONSUMERS

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Values are read from WEBHOOK_CONSUMER_* variables."""
        monkeypatch.setenv("WEBHOOK_CONSUMER_PRODUCER_BASE_URL", "http://producer:5000")
        monkeypatch.setenv("WEBHOOK_CONSUMER_SIGNATURE_TOLERANCE", "0")
        monkeypatch.setenv("WEBHOOK_CONSUMER_CONSUMERS", '["Apolo", "hermes"]')
        monkeypatch.setenv("WEBHOOK_CONSUMER_LOG_LEVEL", "debug")

        config = ConsumerConfig()

        assert config.producer_base_url == "http://producer:5000"
        assert config.signature_tolerance == 0
        assert config.consumers == ["apolo", "hermes"]
        assert config.log_level == "DEBUG"

    def test_empty_consumers_accepts_any(self) -> None:
        """An empty list is kept (any consumer name is accepted)."""
        assert ConsumerConfig(consumers=[]).consumers == []

    def test_header_prefix_lowercased(self) -> None:
        assert ConsumerConfig(header_prefix="Webhook").header_prefix == "webhook"

    def test_static_secret_validated(self) -> None:
        """A malformed static secret is a configuration error."""
        with pytest.raises(ValidationError):
            ConsumerConfig(static_secret="whsec_%%%")

    def test_static_secret_accepted(self) -> None:
        assert ConsumerConfig(static_secret=FIXTURE_SECRET).static_secret == FIXTURE_SECRET

    def test_blank_static_secret_is_none(self) -> None:
        assert ConsumerConfig(static_secret="").static_secret is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"signature_tolerance": -1},
            {"producer_timeout": 0},
            {"port": 70000},
            {"header_prefix": ""},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            ConsumerConfig(**overrides)  # type: ignore[arg-type]
