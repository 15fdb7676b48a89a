"""Pytest configuration and shared fixtures for webhook consumer tests."""

from __future__ import annotations

import pytest

from tests.helpers import FIXTURE_SECRET, FakeProducer
from webhook_consumer.webhooks.store import MemorySecretStore


@pytest.fixture
def fake_producer() -> FakeProducer:
    """A fresh fake producer for each test."""
    return FakeProducer()


@pytest.fixture
def secret() -> str:
    """The known-answer secret."""
    return FIXTURE_SECRET


@pytest.fixture
def store() -> MemorySecretStore:
    """An empty in-memory secret store."""
    return MemorySecretStore()
