"""Webhook trust and dispatch pipeline.

Verifies Svix-style HMAC-SHA256 signatures against per-endpoint secrets,
routes verified payloads by ``eventType`` and manages subscriptions with the
producer.

Example:
    >>> from webhook_consumer.webhooks import MemorySecretStore, sign_payload
    >>> store = MemorySecretStore()
    >>> store.put("https://me/webhooks/apolo/domain", "whsec_AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA")
"""

from webhook_consumer.webhooks.dispatcher import (
    DispatchResult,
    EventDispatcher,
    create_default_dispatcher,
)
from webhook_consumer.webhooks.models import (
    DomainPayload,
    Endpoint,
    EventType,
    OrderCompletedPayload,
    ResyncReport,
    SubscriptionResult,
    TransactionPayload,
    UnknownEventPayload,
    UserCreatedPayload,
    WebhookPayload,
    parse_webhook_payload,
)
from webhook_consumer.webhooks.receiver import DeliveryOutcome, WebhookReceiver
from webhook_consumer.webhooks.router import (
    WEBHOOK_ROUTES,
    create_consumer_router,
    create_subscription_router,
    create_webhook_router,
)
from webhook_consumer.webhooks.signature import (
    SignatureHeaders,
    SignatureVerifier,
    VerificationResult,
    decode_secret,
    generate_secret,
    redact_secret,
    sign_payload,
    verify_signature,
)
from webhook_consumer.webhooks.status import ConsumerStatusGate
from webhook_consumer.webhooks.store import (
    MemorySecretStore,
    SecretStoreProtocol,
    StaticSecretStore,
)
from webhook_consumer.webhooks.subscriptions import SubscriptionManager

__all__ = [
    "WEBHOOK_ROUTES",
    "ConsumerStatusGate",
    "DeliveryOutcome",
    "DispatchResult",
    "DomainPayload",
    "Endpoint",
    "EventDispatcher",
    "EventType",
    "MemorySecretStore",
    "OrderCompletedPayload",
    "ResyncReport",
    "SecretStoreProtocol",
    "SignatureHeaders",
    "SignatureVerifier",
    "StaticSecretStore",
    "SubscriptionManager",
    "SubscriptionResult",
    "TransactionPayload",
    "UnknownEventPayload",
    "UserCreatedPayload",
    "VerificationResult",
    "WebhookPayload",
    "WebhookReceiver",
    "create_consumer_router",
    "create_default_dispatcher",
    "create_subscription_router",
    "create_webhook_router",
    "decode_secret",
    "generate_secret",
    "parse_webhook_payload",
    "redact_secret",
    "sign_payload",
    "verify_signature",
]
