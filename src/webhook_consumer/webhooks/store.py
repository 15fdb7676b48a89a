"""Signing secret storage keyed by endpoint identity.

The endpoint identity is the fully-qualified callback URL the producer
delivers to. Exactly one live secret is kept per identity; storing ``None``
revokes it.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from webhook_consumer.errors import ConfigurationError, ConsumerErrorCode
from webhook_consumer.webhooks.signature import redact_secret

__all__ = [
    "MemorySecretStore",
    "SecretStoreProtocol",
    "StaticSecretStore",
]

logger = logging.getLogger(__name__)


class SecretStoreProtocol(ABC):
    """Protocol for secret storage backends.

    Implementations must be safe to call from concurrent deliveries and
    subscription operations. Only single-key atomicity is required.
    """

    read_only: bool = False

    @abstractmethod
    def get(self, endpoint: str) -> str | None:
        """Get the current secret for an endpoint, or None if absent."""
        ...

    @abstractmethod
    def put(self, endpoint: str, secret: str | None) -> None:
        """Store a secret for an endpoint. ``None`` revokes it."""
        ...

    @abstractmethod
    def items(self) -> dict[str, str]:
        """Snapshot of all stored secrets."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop every stored secret."""
        ...

    def revoke(self, endpoint: str) -> None:
        """Revoke the secret for an endpoint."""
        self.put(endpoint, None)

    def __contains__(self, endpoint: object) -> bool:
        return isinstance(endpoint, str) and self.get(endpoint) is not None


class MemorySecretStore(SecretStoreProtocol):
    """In-memory secret storage (non-persistent).

    Lost on restart; use ``SubscriptionManager.resync_secrets`` to rebuild
    it from the producer.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._secrets: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, endpoint: str) -> str | None:
        with self._lock:
            return self._secrets.get(endpoint)

    def put(self, endpoint: str, secret: str | None) -> None:
        with self._lock:
            if secret is None:
                removed = self._secrets.pop(endpoint, None)
            else:
                self._secrets[endpoint] = secret
                removed = None

        if secret is None:
            if removed is not None:
                logger.info(f"Revoked webhook secret for {endpoint}")
        else:
            logger.info(
                f"Stored webhook secret {redact_secret(secret)} for {endpoint}"
            )

    def items(self) -> dict[str, str]:
        with self._lock:
            return dict(self._secrets)

    def clear(self) -> None:
        with self._lock:
            count = len(self._secrets)
            self._secrets.clear()
        logger.warning(f"Cleared {count} webhook secrets")

    def __len__(self) -> int:
        with self._lock:
            return len(self._secrets)


class StaticSecretStore(SecretStoreProtocol):
    """Single pre-shared secret served for every endpoint.

    Used when the producer is configured out-of-band with one secret
    (``WEBHOOK_CONSUMER_STATIC_SECRET``). The store is read-only.
    """

    read_only = True

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Static secret must not be empty")
        self._secret = secret

    def get(self, endpoint: str) -> str | None:
        return self._secret

    def put(self, endpoint: str, secret: str | None) -> None:
        raise ConfigurationError(
            "Static secret store is read-only; unset the static secret to "
            "manage secrets per subscription",
            code=ConsumerErrorCode.SECRET_READ_ONLY,
        )

    def items(self) -> dict[str, str]:
        return {}

    def clear(self) -> None:
        raise ConfigurationError(
            "Static secret store is read-only",
            code=ConsumerErrorCode.SECRET_READ_ONLY,
        )
