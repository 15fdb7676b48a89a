"""Webhook consumer - authenticated receiver for producer event notifications.

Receives webhooks from an upstream producer, verifies their HMAC-SHA256
signatures against per-endpoint secrets and dispatches them to typed handlers
by event kind. Also manages subscriptions with the producer.

Quick Start:
    >>> from webhook_consumer import create_app
    >>> app = create_app()
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

from webhook_consumer.config import ConsumerConfig
from webhook_consumer.factory import create_app

__all__ = [
    "ConsumerConfig",
    "__license__",
    "__version__",
    "create_app",
]
