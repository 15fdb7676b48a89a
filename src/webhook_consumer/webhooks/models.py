"""Pydantic models for webhook payloads, producer records and API bodies.

JSON field names are camelCase on the wire (the producer's convention);
Python attributes are snake_case. Every model accepts either form.
"""

from __future__ import annotations

import json
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "PAYLOAD_TYPES",
    "ConsumerStatusRequest",
    "ConsumerStatusResponse",
    "DomainPayload",
    "Endpoint",
    "EndpointListResponse",
    "EndpointsResponse",
    "EventType",
    "OperationResponse",
    "OrderCompletedPayload",
    "ProducerAck",
    "ProducerSubscribeRequest",
    "ProducerSubscriptionResult",
    "ResyncReport",
    "ResyncResponse",
    "SecretResult",
    "SubscribeRequest",
    "SubscriptionResponse",
    "SubscriptionResult",
    "TransactionPayload",
    "UnknownEventPayload",
    "UserCreatedPayload",
    "WebhookPayload",
    "parse_webhook_payload",
]


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting both cases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventType(str, Enum):
    """Event kinds the consumer knows how to route.

    Any other ``eventType`` is accepted and logged as unhandled.
    """

    TRANSACTION_DEPOSIT = "transaction.deposit"
    TRANSACTION_WITHDRAWAL = "transaction.withdrawal"
    TRANSACTION_AUTHORIZATION = "transaction.authorization"
    TRANSACTION_REFUND = "transaction.refund"
    DOMAIN_CHANGE = "domain.change"
    ORDER_COMPLETED = "order.completed"
    USER_CREATED = "user.created"


# =============================================================================
# Payload Models (inbound deliveries)
# =============================================================================


class WebhookPayload(CamelModel):
    """Fields shared by every delivery.

    ``event_type`` is the discriminator used by the dispatcher.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    event_type: str = Field(description="Event kind discriminator")
    message: str | None = Field(default=None, description="Producer message")
    timestamp: str | None = Field(
        default=None, description="Time the event occurred, as sent by the producer"
    )


class TransactionPayload(WebhookPayload):
    """Data for ``transaction.*`` events."""

    customer_id: str | None = None
    transaction_id: str | None = None
    account_id: str | None = None
    amount: Decimal | None = None
    amount_formatted: str | None = None
    currency_code: str | None = None
    unicode: str | None = None


class DomainPayload(WebhookPayload):
    """Data for ``domain.change`` events."""

    domain_id: str | None = None
    domain_name: str | None = None


class OrderCompletedPayload(WebhookPayload):
    """Data for ``order.completed`` events."""

    order_id: str | None = None
    customer_id: str | None = None
    total: Decimal | None = None
    currency_code: str | None = None
    payload: dict[str, Any] | None = None


class UserCreatedPayload(WebhookPayload):
    """Data for ``user.created`` events."""

    user_id: str | None = None
    email: str | None = None
    payload: dict[str, Any] | None = None


class UnknownEventPayload(WebhookPayload):
    """Any event kind without a dedicated model; extra fields are kept."""


PAYLOAD_TYPES: dict[str, type[WebhookPayload]] = {
    EventType.TRANSACTION_DEPOSIT.value: TransactionPayload,
    EventType.TRANSACTION_WITHDRAWAL.value: TransactionPayload,
    EventType.TRANSACTION_AUTHORIZATION.value: TransactionPayload,
    EventType.TRANSACTION_REFUND.value: TransactionPayload,
    EventType.DOMAIN_CHANGE.value: DomainPayload,
    EventType.ORDER_COMPLETED.value: OrderCompletedPayload,
    EventType.USER_CREATED.value: UserCreatedPayload,
}


def parse_webhook_payload(raw_body: bytes) -> WebhookPayload:
    """Decode a raw body into the payload model for its ``eventType``.

    Args:
        raw_body: Exact body bytes of the delivery

    Returns:
        The typed payload; ``UnknownEventPayload`` for unrecognised kinds

    Raises:
        ValueError: If the body is not a JSON object with a string ``eventType``
            or does not match the model for its kind
    """
    data = json.loads(raw_body)
    if not isinstance(data, dict):
        raise ValueError("Webhook payload must be a JSON object")

    event_type = data.get("eventType", data.get("event_type"))
    if not isinstance(event_type, str) or not event_type:
        raise ValueError("Webhook payload is missing eventType")

    model = PAYLOAD_TYPES.get(event_type, UnknownEventPayload)
    return model.model_validate(data)


# =============================================================================
# Producer Records (outbound API)
# =============================================================================


class ProducerSubscribeRequest(CamelModel):
    """Body sent to ``POST /producer/subscribe``."""

    consumer_id: str
    webhook_url: str
    event_kinds: list[str] = Field(default_factory=list)
    # Empty string asks the producer to generate the secret
    secret: str = ""


class ProducerSubscriptionResult(CamelModel):
    """Response of ``POST /producer/subscribe``.

    The secret is optional: some producers return it inline, others only
    through ``GET /producer/secret``.
    """

    success: bool = True
    endpoint_id: str | None = None
    secret: str | None = None
    message: str | None = None


class SecretResult(CamelModel):
    """Response of ``GET /producer/secret``."""

    success: bool = True
    endpoint_id: str | None = None
    secret: str | None = None
    message: str | None = None


class Endpoint(CamelModel):
    """An endpoint registered with the producer."""

    id: str
    url: str
    description: str | None = None
    event_kinds: list[str] = Field(default_factory=list)
    disabled: bool = False


class ProducerAck(CamelModel):
    """Body of producer calls that only report success (e.g. unsubscribe)."""

    success: bool = True
    message: str | None = None


class EndpointsResponse(CamelModel):
    """Response of ``GET /producer/endpoints``."""

    success: bool = True
    endpoints: list[Endpoint] = Field(default_factory=list)
    message: str | None = None


# =============================================================================
# Subscription Results (internal)
# =============================================================================


class SubscriptionResult(CamelModel):
    """Outcome of a successful subscribe."""

    endpoint_id: str
    webhook_url: str
    consumer_id: str
    event_kinds: list[str] = Field(default_factory=list)
    secret_source: str = Field(
        description="'inline' when returned at registration, 'lookup' when fetched"
    )


class ResyncReport(CamelModel):
    """Outcome of a secret resync."""

    restored: list[str] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.pending


# =============================================================================
# API Request/Response Models
# =============================================================================


class OperationResponse(CamelModel):
    """``{success, message}`` body returned by every endpoint."""

    success: bool
    message: str | None = None


class SubscribeRequest(CamelModel):
    """Body of ``POST /subscriptions``."""

    consumer_id: str = Field(
        min_length=1, examples=["apolo"], description="Consumer name"
    )
    callback_path: str = Field(
        min_length=1,
        examples=["/webhooks/apolo/transactions"],
        description="Path on this service the producer should call",
    )
    event_kinds: list[str] = Field(
        default_factory=list,
        examples=[["transaction.deposit", "transaction.refund"]],
        description="Event kinds to subscribe to (empty means all)",
    )


class SubscriptionResponse(OperationResponse):
    """Response of ``POST /subscriptions``."""

    endpoint_id: str | None = None
    webhook_url: str | None = None


class ResyncResponse(OperationResponse):
    """Response of ``GET /subscriptions/resync``."""

    restored: list[str] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)


class EndpointListResponse(OperationResponse):
    """Response of ``GET /subscriptions/endpoints``."""

    endpoints: list[Endpoint] = Field(default_factory=list)


class ConsumerStatusRequest(CamelModel):
    """Body of ``POST /consumers/{name}/status``."""

    active: bool


class ConsumerStatusResponse(OperationResponse):
    """Response of ``GET /consumers/{name}/status``."""

    consumer: str
    active: bool
