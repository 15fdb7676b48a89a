"""Per-delivery pipeline: status gate, secret lookup, verify, parse, dispatch.

The receiver is transport-agnostic: it takes the consumer name, the endpoint
identity, the raw body and the headers, and returns a :class:`DeliveryOutcome`.
It never raises; every failure becomes a rejected outcome with an error code.

Steps run strictly in order and the body bytes are used as-is for both the
HMAC and JSON decoding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from webhook_consumer.errors import (
    AuthenticationError,
    ConfigurationError,
    ConsumerDisabledError,
    ConsumerErrorCode,
    WebhookConsumerError,
    create_error_response,
    get_error_message,
)
from webhook_consumer.webhooks.models import parse_webhook_payload
from webhook_consumer.webhooks.signature import (
    MALFORMED_SECRET,
    MISSING_HEADERS,
    SignatureVerifier,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from webhook_consumer.observability.metrics import MetricsCollector
    from webhook_consumer.webhooks.dispatcher import EventDispatcher
    from webhook_consumer.webhooks.signature import SignatureHeaders
    from webhook_consumer.webhooks.status import ConsumerStatusGate
    from webhook_consumer.webhooks.store import SecretStoreProtocol

logger = logging.getLogger(__name__)

__all__ = ["DeliveryOutcome", "WebhookReceiver"]

# Metrics label for consumer names outside the configured set
UNKNOWN_CONSUMER_LABEL = "unknown"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of handling one delivery.

    Attributes:
        accepted: Whether the delivery was verified and dispatched
        message: Human-readable status
        code: Error code when rejected
        event_type: Event kind, once the payload was parsed
        handled: Whether a handler ran (False for unknown kinds)
        message_id: Value of the id header, for correlation
    """

    accepted: bool
    message: str
    code: ConsumerErrorCode | None = None
    event_type: str | None = None
    handled: bool = False
    message_id: str | None = None

    @classmethod
    def rejected(
        cls,
        code: ConsumerErrorCode,
        message: str | None = None,
        message_id: str | None = None,
        event_type: str | None = None,
    ) -> DeliveryOutcome:
        return cls(
            accepted=False,
            message=message or get_error_message(code),
            code=code,
            message_id=message_id,
            event_type=event_type,
        )

    @classmethod
    def from_error(
        cls, error: WebhookConsumerError, message_id: str | None = None
    ) -> DeliveryOutcome:
        """Rejected outcome carrying the error's code and message."""
        return cls.rejected(error.code, error.message, message_id=message_id)

    @property
    def error_code(self) -> ConsumerErrorCode:
        """Code of a rejected outcome (PROCESSING_ERROR if none was set)."""
        return self.code or ConsumerErrorCode.PROCESSING_ERROR

    @property
    def outcome_label(self) -> str:
        if self.accepted:
            return "accepted" if self.handled else "unhandled"
        return create_error_response(self.error_code)["error"]

    def to_response(self) -> dict[str, Any]:
        """``{success, message}`` body returned to the producer."""
        if self.accepted:
            return {"success": True, "message": self.message}
        return create_error_response(self.error_code, self.message)


class WebhookReceiver:
    """Authenticates and dispatches inbound deliveries.

    Example:
        >>> receiver = WebhookReceiver(store, verifier, dispatcher, gate)
        >>> outcome = await receiver.receive(
        ...     "apolo", "https://me/webhooks/apolo/domain", body, request.headers
        ... )
        >>> outcome.accepted
        True
    """

    def __init__(
        self,
        store: SecretStoreProtocol,
        verifier: SignatureVerifier,
        dispatcher: EventDispatcher,
        status_gate: ConsumerStatusGate | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier
        self.dispatcher = dispatcher
        self.status_gate = status_gate
        self._metrics = metrics

    async def receive(
        self,
        consumer: str,
        endpoint: str,
        raw_body: bytes,
        headers: Mapping[str, str],
    ) -> DeliveryOutcome:
        """Handle one delivery.

        Args:
            consumer: Consumer name from the route
            endpoint: Endpoint identity (full callback URL) used as secret key
            raw_body: Exact request body bytes
            headers: Request headers

        Returns:
            DeliveryOutcome (never raises)
        """
        signature_headers = self.verifier.headers_from(headers)
        try:
            outcome = await self._receive(consumer, endpoint, raw_body, signature_headers)
        except WebhookConsumerError as e:
            outcome = DeliveryOutcome.from_error(e, signature_headers.message_id)

        if self._metrics is not None:
            self._metrics.record_delivery(
                self._consumer_label(consumer, outcome), outcome.outcome_label
            )
        return outcome

    def _consumer_label(self, consumer: str, outcome: DeliveryOutcome) -> str:
        """Consumer label bounded to configured names or authenticated senders."""
        if outcome.code == ConsumerErrorCode.CONSUMER_UNKNOWN:
            return UNKNOWN_CONSUMER_LABEL
        if self.status_gate is not None and self.status_gate.restricted:
            return consumer.lower()
        return consumer.lower() if outcome.accepted else UNKNOWN_CONSUMER_LABEL

    def _check_consumer(self, consumer: str, message_id: str | None) -> None:
        if self.status_gate is None:
            return
        if not self.status_gate.is_known(consumer):
            logger.warning(f"Rejected delivery {message_id} for unknown consumer {consumer}")
            raise WebhookConsumerError(
                f"Unknown consumer {consumer}", code=ConsumerErrorCode.CONSUMER_UNKNOWN
            )
        if not self.status_gate.is_active(consumer):
            logger.info(f"Rejected delivery {message_id} for disabled consumer {consumer}")
            raise ConsumerDisabledError(f"Consumer {consumer} is disabled")

    async def _receive(
        self,
        consumer: str,
        endpoint: str,
        raw_body: bytes,
        signature_headers: SignatureHeaders,
    ) -> DeliveryOutcome:
        message_id = signature_headers.message_id
        self._check_consumer(consumer, message_id)

        secret = self.store.get(endpoint)
        if not secret:
            logger.warning(f"Webhook secret not configured for {endpoint}")
            raise ConfigurationError()

        result = self.verifier.verify(raw_body, signature_headers, secret)
        if not result.authentic:
            logger.warning(
                f"Webhook signature verification failed for {endpoint} "
                f"(message {message_id}): {result.reason}"
            )
            if result.reason == MALFORMED_SECRET:
                raise ConfigurationError(code=ConsumerErrorCode.SECRET_MALFORMED)
            if result.reason == MISSING_HEADERS:
                raise AuthenticationError(code=ConsumerErrorCode.MISSING_HEADERS)
            raise AuthenticationError()

        try:
            payload = parse_webhook_payload(raw_body)
        except ValueError as e:
            logger.warning(f"Invalid webhook payload for message {message_id}: {e}")
            return DeliveryOutcome.rejected(
                ConsumerErrorCode.INVALID_PAYLOAD, message_id=message_id
            )

        logger.debug(f"Verified webhook {message_id} ({payload.event_type}) for {consumer}")

        try:
            dispatch = await self.dispatcher.route(payload)
        except Exception:
            logger.exception(
                f"Error processing webhook {message_id} ({payload.event_type})"
            )
            return DeliveryOutcome.rejected(
                ConsumerErrorCode.PROCESSING_ERROR,
                message_id=message_id,
                event_type=payload.event_type,
            )

        return DeliveryOutcome(
            accepted=True,
            message="Webhook received and processed",
            event_type=dispatch.event_type,
            handled=dispatch.handled,
            message_id=message_id,
        )
