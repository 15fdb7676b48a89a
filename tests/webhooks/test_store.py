"""Tests for secret storage backends."""

from __future__ import annotations

import threading

import pytest

from tests.helpers import FIXTURE_SECRET
from webhook_consumer.errors import ConfigurationError, ConsumerErrorCode
from webhook_consumer.webhooks.signature import generate_secret
from webhook_consumer.webhooks.store import MemorySecretStore, StaticSecretStore

ENDPOINT = "https://consumer.example.com/webhooks/apolo/transactions"


class TestMemorySecretStore:
    """Tests for in-memory secret store."""

    def test_get_missing(self, store: MemorySecretStore) -> None:
        """Unknown endpoints have no secret."""
        assert store.get(ENDPOINT) is None
        assert ENDPOINT not in store

    def test_put_then_get(self, store: MemorySecretStore) -> None:
        """A stored secret is returned by the next lookup."""
        store.put(ENDPOINT, FIXTURE_SECRET)

        assert store.get(ENDPOINT) == FIXTURE_SECRET
        assert ENDPOINT in store
        assert len(store) == 1

    def test_put_replaces(self, store: MemorySecretStore) -> None:
        """Exactly one live secret is kept per endpoint."""
        new_secret = generate_secret()
        store.put(ENDPOINT, FIXTURE_SECRET)
        store.put(ENDPOINT, new_secret)

        assert store.get(ENDPOINT) == new_secret
        assert len(store) == 1

    def test_put_none_revokes(self, store: MemorySecretStore) -> None:
        """Storing None removes the secret."""
        store.put(ENDPOINT, FIXTURE_SECRET)
        store.put(ENDPOINT, None)

        assert store.get(ENDPOINT) is None

    def test_revoke(self, store: MemorySecretStore) -> None:
        """revoke() is put(endpoint, None); revoking twice is harmless."""
        store.put(ENDPOINT, FIXTURE_SECRET)
        store.revoke(ENDPOINT)
        store.revoke(ENDPOINT)

        assert ENDPOINT not in store

    def test_items_is_snapshot(self, store: MemorySecretStore) -> None:
        """Mutating the snapshot does not touch the store."""
        store.put(ENDPOINT, FIXTURE_SECRET)
        snapshot = store.items()
        snapshot.clear()

        assert store.get(ENDPOINT) == FIXTURE_SECRET

    def test_clear(self, store: MemorySecretStore) -> None:
        """clear() drops every secret."""
        store.put(ENDPOINT, FIXTURE_SECRET)
        store.put(ENDPOINT + "/other", generate_secret())
        store.clear()

        assert store.items() == {}

    def test_initial_values(self) -> None:
        """A store can be seeded."""
        store = MemorySecretStore({ENDPOINT: FIXTURE_SECRET})
        assert store.get(ENDPOINT) == FIXTURE_SECRET

    def test_secret_not_logged(
        self, store: MemorySecretStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Only the redacted form of a secret reaches the log."""
        with caplog.at_level("INFO", logger="webhook_consumer.webhooks.store"):
            store.put(ENDPOINT, FIXTURE_SECRET)

        assert FIXTURE_SECRET not in caplog.text
        assert "whsec_****" in caplog.text

    def test_concurrent_puts(self, store: MemorySecretStore) -> None:
        """Concurrent writers to distinct keys all land."""

        def writer(n: int) -> None:
            for i in range(50):
                store.put(f"{ENDPOINT}/{n}/{i}", FIXTURE_SECRET)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 400


class TestStaticSecretStore:
    """Tests for the single pre-shared secret backend."""

    def test_same_secret_everywhere(self) -> None:
        """Every endpoint gets the configured secret."""
        store = StaticSecretStore(FIXTURE_SECRET)

        assert store.read_only
        assert store.get(ENDPOINT) == FIXTURE_SECRET
        assert store.get("https://anything") == FIXTURE_SECRET

    def test_writes_rejected(self) -> None:
        """put, revoke and clear raise a read-only configuration error."""
        store = StaticSecretStore(FIXTURE_SECRET)

        with pytest.raises(ConfigurationError) as exc_info:
            store.put(ENDPOINT, generate_secret())
        assert exc_info.value.code == ConsumerErrorCode.SECRET_READ_ONLY

        with pytest.raises(ConfigurationError):
            store.revoke(ENDPOINT)
        with pytest.raises(ConfigurationError):
            store.clear()

    def test_empty_secret(self) -> None:
        """An empty static secret is refused."""
        with pytest.raises(ValueError):
            StaticSecretStore("")
