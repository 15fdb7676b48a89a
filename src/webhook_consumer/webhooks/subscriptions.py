"""Subscription lifecycle: register with the producer and keep secrets in sync.

The secret for a subscription is stored under the callback URL, not the
producer's endpoint id, because the URL is what an inbound delivery carries.
A reverse index (endpoint id to URL) lets unsubscribe revoke the right
secret even when the producer lookup fails.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from webhook_consumer.errors import (
    ConsumerErrorCode,
    ResyncFailed,
    SubscriptionFailed,
    UpstreamError,
)
from webhook_consumer.webhooks.models import Endpoint, ResyncReport, SubscriptionResult
from webhook_consumer.webhooks.signature import decode_secret, redact_secret

if TYPE_CHECKING:
    from webhook_consumer.producer.client import ProducerClient
    from webhook_consumer.webhooks.store import SecretStoreProtocol

logger = logging.getLogger(__name__)

__all__ = ["SubscriptionManager", "build_callback_url"]


def build_callback_url(base_url: str, callback_path: str) -> str:
    """Join the externally reachable base URL and a callback path."""
    return f"{base_url.rstrip('/')}/{callback_path.lstrip('/')}"


class SubscriptionManager:
    """Orchestrates subscribe, unsubscribe and secret resync.

    Args:
        producer: Client for the producer API
        store: Secret store the verifier reads from
        public_base_url: This service's externally reachable base URL
    """

    def __init__(
        self,
        producer: ProducerClient,
        store: SecretStoreProtocol,
        public_base_url: str | None = None,
    ) -> None:
        self.producer = producer
        self.store = store
        self.public_base_url = public_base_url
        self._urls: dict[str, str] = {}
        self._lock = threading.Lock()

    def _remember(self, endpoint_id: str, url: str) -> None:
        with self._lock:
            self._urls[endpoint_id] = url

    def _forget(self, endpoint_id: str) -> str | None:
        with self._lock:
            return self._urls.pop(endpoint_id, None)

    def known_url(self, endpoint_id: str) -> str | None:
        with self._lock:
            return self._urls.get(endpoint_id)

    def _store_secret(self, url: str, secret: str) -> None:
        if self.store.read_only:
            logger.info(f"Secret store is read-only; not storing secret for {url}")
            return
        self.store.put(url, secret)

    async def _fetch_secret(self, endpoint_id: str) -> str:
        """Fetch and validate an endpoint secret.

        Raises:
            UpstreamError: If the producer call fails
            ValueError: If the producer returns no usable secret
        """
        result = await self.producer.get_secret(endpoint_id)
        if not result.success or not result.secret:
            raise ValueError(
                result.message or f"Producer returned no secret for {endpoint_id}"
            )
        decode_secret(result.secret)
        return result.secret

    async def subscribe(
        self,
        consumer_id: str,
        callback_path: str,
        event_kinds: list[str],
        base_url: str | None = None,
    ) -> SubscriptionResult:
        """Register a callback with the producer and store its secret.

        Args:
            consumer_id: Consumer name
            callback_path: Path on this service the producer should call
            event_kinds: Event kinds to subscribe to
            base_url: Overrides the configured public base URL

        Returns:
            SubscriptionResult with the producer endpoint id and callback URL

        Raises:
            SubscriptionFailed: If registration or secret retrieval fails. No
                secret is written in that case.
        """
        root = base_url or self.public_base_url
        if not root:
            raise SubscriptionFailed("No public base URL configured for callbacks")
        webhook_url = build_callback_url(root, callback_path)

        try:
            registration = await self.producer.subscribe(
                consumer_id, webhook_url, event_kinds
            )
        except UpstreamError as e:
            raise SubscriptionFailed(f"Failed to subscribe: {e.message}") from e

        if not registration.success:
            raise SubscriptionFailed(
                f"Failed to subscribe: {registration.message or 'rejected by producer'}"
            )
        if not registration.endpoint_id:
            raise SubscriptionFailed(
                "Failed to subscribe: producer response has no endpoint id"
            )
        endpoint_id = registration.endpoint_id

        if registration.secret:
            secret_source = "inline"
            secret = registration.secret
            try:
                decode_secret(secret)
            except ValueError as e:
                raise SubscriptionFailed(
                    f"Producer returned a malformed secret for {endpoint_id}"
                ) from e
        else:
            secret_source = "lookup"
            try:
                secret = await self._fetch_secret(endpoint_id)
            except (UpstreamError, ValueError) as e:
                raise SubscriptionFailed(
                    f"Subscribed as {endpoint_id} but could not retrieve its secret: {e}"
                ) from e

        self._store_secret(webhook_url, secret)
        self._remember(endpoint_id, webhook_url)

        logger.info(
            f"Subscribed {consumer_id} as {endpoint_id} at {webhook_url} "
            f"(secret {redact_secret(secret)} via {secret_source})"
        )
        return SubscriptionResult(
            endpoint_id=endpoint_id,
            webhook_url=webhook_url,
            consumer_id=consumer_id,
            event_kinds=event_kinds,
            secret_source=secret_source,
        )

    async def unsubscribe(self, endpoint_id: str) -> list[str]:
        """Deregister an endpoint and revoke its secret.

        The producer lookup is best-effort. Once deregistration succeeds the
        secret is revoked for every callback URL known for the endpoint.

        Returns:
            Callback URLs whose secrets were revoked

        Raises:
            SubscriptionFailed: If the producer refuses the deregistration
        """
        urls: list[str] = []
        try:
            endpoint = await self.producer.get_endpoint(endpoint_id)
            urls.append(endpoint.url)
        except UpstreamError as e:
            logger.warning(
                f"Could not resolve endpoint {endpoint_id} before unsubscribing: {e.message}"
            )

        try:
            await self.producer.unsubscribe(endpoint_id)
        except UpstreamError as e:
            raise SubscriptionFailed(
                f"Failed to unsubscribe: {e.message}",
                code=ConsumerErrorCode.UNSUBSCRIBE_FAILED,
            ) from e

        indexed = self._forget(endpoint_id)
        if indexed and indexed not in urls:
            urls.append(indexed)

        if not urls:
            logger.error(
                f"Unsubscribed {endpoint_id} but no callback URL is known; "
                "no secret was revoked"
            )
            return []

        if self.store.read_only:
            logger.info(f"Secret store is read-only; nothing to revoke for {endpoint_id}")
            return []

        for url in urls:
            self.store.revoke(url)
        logger.info(f"Unsubscribed {endpoint_id} ({', '.join(urls)})")
        return urls

    async def resync_secrets(self) -> ResyncReport:
        """Repopulate the secret store from the producer's endpoint list.

        Stops at the first endpoint whose secret cannot be retrieved.

        Raises:
            ResyncFailed: With the endpoints already restored and those pending
        """
        try:
            endpoints = await self.producer.list_endpoints()
        except UpstreamError as e:
            raise ResyncFailed(
                f"Failed to list endpoints: {e.message}", restored=[], pending=[]
            ) from e

        if self.store.read_only:
            logger.info("Secret store is read-only; resync skipped")
            return ResyncReport(pending=[])

        restored: list[str] = []
        for index, endpoint in enumerate(endpoints):
            try:
                secret = await self._fetch_secret(endpoint.id)
            except (UpstreamError, ValueError) as e:
                pending = [ep.id for ep in endpoints[index:]]
                logger.error(
                    f"Resync stopped at {endpoint.id}: {e} "
                    f"({len(restored)} restored, {len(pending)} pending)"
                )
                raise ResyncFailed(
                    f"Failed to resync secret for {endpoint.id}: {e}",
                    restored=restored,
                    pending=pending,
                ) from e

            self.store.put(endpoint.url, secret)
            self._remember(endpoint.id, endpoint.url)
            restored.append(endpoint.id)

        logger.info(f"Resynced {len(restored)} webhook secrets")
        return ResyncReport(restored=restored)

    async def list_endpoints(self) -> list[Endpoint]:
        """Endpoints currently registered with the producer.

        Raises:
            UpstreamError: If the producer call fails
        """
        return await self.producer.list_endpoints()
