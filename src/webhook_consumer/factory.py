"""Application factory for the webhook consumer service.

Wires configuration, secret store, verifier, dispatcher, status gate,
producer client and subscription manager into one FastAPI app.

Example - Minimal usage:
    >>> from webhook_consumer import create_app
    >>> app = create_app()  # Load config from environment

Example - Custom handlers:
    >>> from webhook_consumer.webhooks import create_default_dispatcher
    >>> dispatcher = create_default_dispatcher()
    >>> @dispatcher.on("transaction.deposit")
    ... async def credit(payload):
    ...     ...
    >>> app = create_app(dispatcher=dispatcher)

The components are stored on ``app.state`` for route and test access:
    - app.state.config: ConsumerConfig
    - app.state.secret_store: SecretStoreProtocol
    - app.state.dispatcher: EventDispatcher
    - app.state.status_gate: ConsumerStatusGate
    - app.state.producer: ProducerClient
    - app.state.subscriptions: SubscriptionManager
    - app.state.receiver: WebhookReceiver
    - app.state.metrics: MetricsCollector | None

Health Endpoint (GET /health):
    Always returns HTTP 200 when the service is running.

    {
        "status": "ok",
        "service": "Webhook Consumer",
        "version": "0.1.0",
        "timestamp": "2026-01-05T10:30:45.123456Z"
    }
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware

from webhook_consumer.config import ConsumerConfig
from webhook_consumer.observability import (
    MetricsCollector,
    create_metrics_middleware,
    start_metrics_server,
)
from webhook_consumer.producer import ProducerClient
from webhook_consumer.webhooks.dispatcher import create_default_dispatcher
from webhook_consumer.webhooks.receiver import WebhookReceiver
from webhook_consumer.webhooks.router import (
    create_consumer_router,
    create_subscription_router,
    create_webhook_router,
)
from webhook_consumer.webhooks.signature import SignatureVerifier
from webhook_consumer.webhooks.status import ConsumerStatusGate
from webhook_consumer.webhooks.store import (
    MemorySecretStore,
    SecretStoreProtocol,
    StaticSecretStore,
)
from webhook_consumer.webhooks.subscriptions import SubscriptionManager

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from webhook_consumer.webhooks.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

__all__ = ["create_app"]


def _package_version() -> str:
    try:
        return get_version("webhook-consumer")
    except PackageNotFoundError:
        logger.warning("Could not determine package version")
        return "unknown"


def _create_store(config: ConsumerConfig) -> SecretStoreProtocol:
    if config.static_secret:
        logger.info("Using static webhook secret for every endpoint")
        return StaticSecretStore(config.static_secret)
    return MemorySecretStore()


def create_app(
    config: ConsumerConfig | None = None,
    *,
    store: SecretStoreProtocol | None = None,
    dispatcher: EventDispatcher | None = None,
    producer_transport: httpx.AsyncBaseTransport | None = None,
    metrics: MetricsCollector | None = None,
) -> FastAPI:
    """Create the webhook consumer FastAPI application.

    Args:
        config: Service configuration (loads from environment if None)
        store: Secret store (in-memory, or static when a static secret is configured)
        dispatcher: Event dispatcher (default logging handlers if None)
        producer_transport: httpx transport for the producer client (tests)
        metrics: Metrics collector (created when metrics are enabled)

    Returns:
        Configured FastAPI application ready for uvicorn
    """
    if config is None:
        config = ConsumerConfig()

    app_version = _package_version()

    if metrics is None and config.metrics_enabled:
        metrics = MetricsCollector()
    if store is None:
        store = _create_store(config)
    if dispatcher is None:
        dispatcher = create_default_dispatcher(metrics=metrics)

    status_gate = ConsumerStatusGate(known_consumers=config.consumers)
    verifier = SignatureVerifier(
        header_prefix=config.header_prefix,
        tolerance_seconds=config.signature_tolerance,
    )
    producer = ProducerClient(
        config.producer_base_url,
        timeout=config.producer_timeout,
        transport=producer_transport,
        metrics=metrics,
    )
    subscriptions = SubscriptionManager(
        producer, store, public_base_url=config.public_base_url
    )
    receiver = WebhookReceiver(
        store, verifier, dispatcher, status_gate=status_gate, metrics=metrics
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context for startup and shutdown events."""
        logger.info(f"Starting {config.app_name} v{app_version}")
        logger.info(
            f"Producer API at {config.producer_base_url}; "
            f"consumers: {', '.join(config.consumers) or 'any'}"
        )
        if config.public_base_url is None:
            logger.warning(
                "No public base URL configured; callback URLs use the request host"
            )

        if metrics is not None and config.metrics_port is not None:
            start_metrics_server(config.metrics_port, metrics)

        yield

        await producer.close()
        logger.info("Shutting down gracefully...")

    app = FastAPI(
        title=config.app_name,
        version=app_version,
        description="Receives, authenticates and dispatches producer webhooks",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.secret_store = store
    app.state.dispatcher = dispatcher
    app.state.status_gate = status_gate
    app.state.producer = producer
    app.state.subscriptions = subscriptions
    app.state.receiver = receiver
    app.state.metrics = metrics

    app.add_middleware(BaseHTTPMiddleware, dispatch=create_metrics_middleware(metrics))

    app.include_router(create_webhook_router(receiver, config.public_base_url))
    app.include_router(create_subscription_router(subscriptions))
    app.include_router(create_consumer_router(status_gate))

    @app.get("/health", tags=["health"])  # type: ignore[misc]
    async def health() -> dict[str, Any]:
        """Basic service status."""
        return {
            "status": "ok",
            "service": config.app_name,
            "version": app_version,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    return app
