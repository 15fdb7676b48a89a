"""Prometheus metrics for the webhook consumer.

Each MetricsCollector owns its own CollectorRegistry so several apps (or
tests) can coexist in one process. The registry can be exposed on a
separate port with :func:`start_metrics_server`.

Example:
    >>> metrics = MetricsCollector()
    >>> metrics.record_delivery("apolo", "accepted")
    >>> metrics.record_event("transaction.deposit", handled=True)
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

__all__ = ["MetricsCollector", "create_metrics_middleware", "start_metrics_server"]


class MetricsCollector:
    """Collects Prometheus metrics for deliveries, events and producer calls.

    Metrics collected:
    - webhook_consumer_deliveries_total: Deliveries by consumer and outcome
    - webhook_consumer_events_total: Dispatched events by type and handled flag
    - webhook_consumer_upstream_errors_total: Failed producer calls by operation
    - webhook_consumer_request_latency_seconds: HTTP latency histogram
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.deliveries = Counter(
            "webhook_consumer_deliveries_total",
            "Inbound webhook deliveries",
            ["consumer", "outcome"],
            registry=self.registry,
        )
        self.events = Counter(
            "webhook_consumer_events_total",
            "Dispatched webhook events",
            ["event_type", "handled"],
            registry=self.registry,
        )
        self.upstream_errors = Counter(
            "webhook_consumer_upstream_errors_total",
            "Failed producer API calls",
            ["operation"],
            registry=self.registry,
        )
        self.request_latency = Histogram(
            "webhook_consumer_request_latency_seconds",
            "Request latency in seconds",
            ["endpoint", "method"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self.registry,
        )

    def record_delivery(self, consumer: str, outcome: str) -> None:
        """Record a delivery outcome (e.g. "accepted", "invalid_signature").

        Callers pass a bounded consumer label; the receiver maps names outside
        the configured set to "unknown".
        """
        self.deliveries.labels(consumer=consumer, outcome=outcome).inc()

    def record_event(self, event_type: str, handled: bool) -> None:
        """Record a dispatched event.

        Unknown event kinds are recorded under ``event_type="unknown"`` to keep
        label cardinality bounded.
        """
        self.events.labels(
            event_type=event_type if handled else "unknown",
            handled="true" if handled else "false",
        ).inc()

    def record_upstream_error(self, operation: str) -> None:
        self.upstream_errors.labels(operation=operation).inc()

    def record_request(self, endpoint: str, method: str, latency: float) -> None:
        self.request_latency.labels(endpoint=endpoint, method=method).observe(latency)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of a sample (0.0 if never recorded)."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0


def create_metrics_middleware(
    metrics: MetricsCollector | None,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Create Starlette middleware that records request latency.

    Uses the matched route template (``/webhooks/{consumer}/domain``) as the
    endpoint label when available.
    """

    async def metrics_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if metrics is None:
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            return await call_next(request)
        finally:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            metrics.record_request(
                endpoint=endpoint,
                method=request.method,
                latency=time.perf_counter() - start_time,
            )

    return metrics_middleware


def start_metrics_server(port: int, metrics: MetricsCollector) -> bool:
    """Expose a collector's registry over HTTP on a separate port.

    Returns:
        True if the server started, False otherwise
    """
    try:
        start_http_server(port, registry=metrics.registry)
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {port}: {e}")
        return False
    logger.info(f"Prometheus metrics server started on port {port}")
    return True
