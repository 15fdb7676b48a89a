"""Observability for the webhook consumer (Prometheus metrics)."""

from webhook_consumer.observability.metrics import (
    MetricsCollector,
    create_metrics_middleware,
    start_metrics_server,
)

__all__ = [
    "MetricsCollector",
    "create_metrics_middleware",
    "start_metrics_server",
]
