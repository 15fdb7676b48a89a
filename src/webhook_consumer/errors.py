"""Error codes and exception types for the webhook consumer.

Error codes live in the E5xx range and map to HTTP status, recoverability,
and a default message. Inbound deliveries only ever surface 200 or 400 to
the producer; the registry status is used by the management endpoints.

Error Code Ranges:
    E50x: Configuration errors (no secret on file, malformed secret)
    E51x: Authentication errors (missing headers, signature mismatch)
    E52x: Upstream (producer API) errors
    E53x: Subscription lifecycle errors
    E54x: Consumer state errors
    E59x: Delivery processing errors

Example:
    >>> from webhook_consumer.errors import ConsumerErrorCode, create_error_response
    >>> create_error_response(ConsumerErrorCode.SECRET_NOT_CONFIGURED)["message"]
    'Webhook secret not configured'
"""

from __future__ import annotations

from enum import Enum
from typing import Any

__all__ = [
    "CONSUMER_ERROR_REGISTRY",
    "AuthenticationError",
    "ConfigurationError",
    "ConsumerDisabledError",
    "ConsumerErrorCode",
    "ResyncFailed",
    "SubscriptionFailed",
    "UpstreamError",
    "WebhookConsumerError",
    "create_error_response",
    "get_error_message",
    "get_error_status",
]


class ConsumerErrorCode(str, Enum):
    """Webhook consumer error codes (E5xx range)."""

    # E50x - Configuration errors
    SECRET_NOT_CONFIGURED = "E500"
    SECRET_MALFORMED = "E501"
    SECRET_READ_ONLY = "E502"

    # E51x - Authentication errors
    MISSING_HEADERS = "E510"
    INVALID_SIGNATURE = "E511"

    # E52x - Upstream errors
    UPSTREAM_UNAVAILABLE = "E520"
    UPSTREAM_REJECTED = "E521"
    UPSTREAM_INVALID_RESPONSE = "E522"

    # E53x - Subscription errors
    SUBSCRIPTION_FAILED = "E530"
    UNSUBSCRIBE_FAILED = "E531"
    RESYNC_FAILED = "E532"

    # E54x - Consumer state errors
    CONSUMER_DISABLED = "E540"
    CONSUMER_UNKNOWN = "E541"

    # E59x - Delivery processing errors
    INVALID_PAYLOAD = "E590"
    PROCESSING_ERROR = "E591"


CONSUMER_ERROR_REGISTRY: dict[ConsumerErrorCode, dict[str, Any]] = {
    # E50x - Configuration errors
    ConsumerErrorCode.SECRET_NOT_CONFIGURED: {
        "error": "secret_not_configured",
        "http_status": 400,
        "recoverable": False,
        "message": "Webhook secret not configured",
    },
    ConsumerErrorCode.SECRET_MALFORMED: {
        "error": "secret_malformed",
        "http_status": 400,
        "recoverable": False,
        "message": "Webhook secret is malformed",
    },
    ConsumerErrorCode.SECRET_READ_ONLY: {
        "error": "secret_read_only",
        "http_status": 409,
        "recoverable": False,
        "message": "Secret store is read-only",
    },
    # E51x - Authentication errors
    ConsumerErrorCode.MISSING_HEADERS: {
        "error": "missing_headers",
        "http_status": 400,
        "recoverable": False,
        "message": "Missing required webhook headers",
    },
    ConsumerErrorCode.INVALID_SIGNATURE: {
        "error": "invalid_signature",
        "http_status": 400,
        "recoverable": False,
        "message": "Invalid webhook signature",
    },
    # E52x - Upstream errors
    ConsumerErrorCode.UPSTREAM_UNAVAILABLE: {
        "error": "upstream_unavailable",
        "http_status": 502,
        "recoverable": True,
        "message": "Producer API is unreachable",
    },
    ConsumerErrorCode.UPSTREAM_REJECTED: {
        "error": "upstream_rejected",
        "http_status": 502,
        "recoverable": False,
        "message": "Producer API rejected the request",
    },
    ConsumerErrorCode.UPSTREAM_INVALID_RESPONSE: {
        "error": "upstream_invalid_response",
        "http_status": 502,
        "recoverable": False,
        "message": "Producer API returned an unexpected response",
    },
    # E53x - Subscription errors
    ConsumerErrorCode.SUBSCRIPTION_FAILED: {
        "error": "subscription_failed",
        "http_status": 400,
        "recoverable": True,
        "message": "Failed to subscribe",
    },
    ConsumerErrorCode.UNSUBSCRIBE_FAILED: {
        "error": "unsubscribe_failed",
        "http_status": 400,
        "recoverable": True,
        "message": "Failed to unsubscribe",
    },
    ConsumerErrorCode.RESYNC_FAILED: {
        "error": "resync_failed",
        "http_status": 400,
        "recoverable": True,
        "message": "Failed to resync webhook secrets",
    },
    # E54x - Consumer state errors
    ConsumerErrorCode.CONSUMER_DISABLED: {
        "error": "consumer_disabled",
        "http_status": 400,
        "recoverable": False,
        "message": "Consumer is disabled",
    },
    ConsumerErrorCode.CONSUMER_UNKNOWN: {
        "error": "consumer_unknown",
        "http_status": 404,
        "recoverable": False,
        "message": "Unknown consumer",
    },
    # E59x - Delivery processing errors
    ConsumerErrorCode.INVALID_PAYLOAD: {
        "error": "invalid_payload",
        "http_status": 400,
        "recoverable": False,
        "message": "Invalid webhook payload",
    },
    ConsumerErrorCode.PROCESSING_ERROR: {
        "error": "processing_error",
        "http_status": 400,
        "recoverable": True,
        "message": "Error processing webhook",
    },
}


def get_error_status(code: ConsumerErrorCode) -> int:
    """Get HTTP status for an error code."""
    entry = CONSUMER_ERROR_REGISTRY.get(code)
    if entry is None:
        return 500
    status = entry.get("http_status")
    return int(status) if status is not None else 500


def get_error_message(code: ConsumerErrorCode) -> str:
    """Get default message for an error code."""
    entry = CONSUMER_ERROR_REGISTRY.get(code)
    if entry is None:
        return "Unknown webhook consumer error"
    message = entry.get("message")
    return str(message) if message is not None else "Unknown webhook consumer error"


def create_error_response(
    code: ConsumerErrorCode,
    message: str | None = None,
) -> dict[str, Any]:
    """Create the ``{success: false, ...}`` body used by every endpoint.

    Args:
        code: The error code.
        message: Optional custom message (uses the registry default if omitted).

    Returns:
        Dictionary with ``success``, ``message``, ``code`` and ``error`` keys.
    """
    metadata = CONSUMER_ERROR_REGISTRY[code]
    return {
        "success": False,
        "message": message or metadata["message"],
        "code": code.value,
        "error": metadata["error"],
    }


class WebhookConsumerError(Exception):
    """Base class for webhook consumer errors.

    Attributes:
        code: Error code from the registry
        message: Human-readable message
    """

    default_code: ConsumerErrorCode = ConsumerErrorCode.PROCESSING_ERROR

    def __init__(
        self, message: str | None = None, code: ConsumerErrorCode | None = None
    ) -> None:
        self.code = code or self.default_code
        self.message = message or get_error_message(self.code)
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return get_error_status(self.code)

    def to_response(self) -> dict[str, Any]:
        return create_error_response(self.code, self.message)


class ConfigurationError(WebhookConsumerError):
    """No secret on file for an endpoint, or the secret is malformed."""

    default_code = ConsumerErrorCode.SECRET_NOT_CONFIGURED


class AuthenticationError(WebhookConsumerError):
    """Signature mismatch or missing signature headers."""

    default_code = ConsumerErrorCode.INVALID_SIGNATURE


class ConsumerDisabledError(WebhookConsumerError):
    """Deliveries for this consumer are currently switched off."""

    default_code = ConsumerErrorCode.CONSUMER_DISABLED


class UpstreamError(WebhookConsumerError):
    """The producer API was unreachable or returned a non-success response.

    Attributes:
        operation: Producer operation that failed (e.g. "subscribe")
        status_code: HTTP status returned by the producer, if any
        body: Response body returned by the producer, if any
    """

    default_code = ConsumerErrorCode.UPSTREAM_REJECTED

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        *,
        status_code: int | None = None,
        body: str | None = None,
        code: ConsumerErrorCode | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        if message is None:
            message = f"Producer {operation} failed"
            if status_code is not None:
                message += f" with status {status_code}"
            if body:
                message += f": {body}"
        super().__init__(message, code)


class SubscriptionFailed(WebhookConsumerError):
    """Subscribe or unsubscribe could not be completed."""

    default_code = ConsumerErrorCode.SUBSCRIPTION_FAILED


class ResyncFailed(WebhookConsumerError):
    """Secret resync stopped at the first endpoint it could not restore.

    Attributes:
        restored: Endpoint ids whose secrets were stored before the failure
        pending: Endpoint ids not yet restored (the failing one first)
    """

    default_code = ConsumerErrorCode.RESYNC_FAILED

    def __init__(
        self,
        message: str,
        *,
        restored: list[str],
        pending: list[str],
    ) -> None:
        self.restored = restored
        self.pending = pending
        super().__init__(message)
