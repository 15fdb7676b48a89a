"""Async HTTP client for the webhook producer's REST API.

Every call raises :class:`UpstreamError` when the producer is unreachable,
answers with a non-2xx status, reports ``success: false``, or returns a body
that does not parse; the upstream body is kept on the error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from webhook_consumer.errors import ConsumerErrorCode, UpstreamError
from webhook_consumer.webhooks.models import (
    Endpoint,
    EndpointsResponse,
    ProducerAck,
    ProducerSubscribeRequest,
    ProducerSubscriptionResult,
    SecretResult,
)

if TYPE_CHECKING:
    from webhook_consumer.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

__all__ = ["ProducerClient"]

ModelT = TypeVar("ModelT", bound=BaseModel)

# Longest upstream body kept on an UpstreamError
MAX_ERROR_BODY = 1024


class ProducerClient:
    """Client for the producer's subscription API.

    Uses one shared httpx.AsyncClient for connection pooling. Pass
    ``transport`` to swap the network layer (``httpx.MockTransport`` in tests).

    Example:
        >>> client = ProducerClient("http://producer:5000", timeout=10)
        >>> result = await client.subscribe("apolo", "https://me/webhooks/apolo/domain", [])
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._metrics = metrics
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._get_client().request(
                method, path, json=json, params=params
            )
        except httpx.TimeoutException as e:
            self._record_error(operation)
            raise UpstreamError(
                operation,
                f"Producer {operation} timed out after {self.timeout}s",
                code=ConsumerErrorCode.UPSTREAM_UNAVAILABLE,
            ) from e
        except httpx.HTTPError as e:
            self._record_error(operation)
            raise UpstreamError(
                operation,
                f"Producer {operation} failed: {e}",
                code=ConsumerErrorCode.UPSTREAM_UNAVAILABLE,
            ) from e

        if not response.is_success:
            self._record_error(operation)
            body = response.text[:MAX_ERROR_BODY]
            logger.warning(
                f"Producer {operation} returned {response.status_code}: {body}"
            )
            raise UpstreamError(
                operation,
                status_code=response.status_code,
                body=body,
                code=ConsumerErrorCode.UPSTREAM_REJECTED,
            )

        return response

    def _parse(
        self, operation: str, response: httpx.Response, model: type[ModelT]
    ) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            self._record_error(operation)
            raise UpstreamError(
                operation,
                f"Producer {operation} returned an unexpected body",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY],
                code=ConsumerErrorCode.UPSTREAM_INVALID_RESPONSE,
            ) from e

    def _check_success(
        self,
        operation: str,
        response: httpx.Response,
        success: bool,
        message: str | None = None,
    ) -> None:
        """Raise when a 2xx answer carries ``success: false``."""
        if success:
            return
        self._record_error(operation)
        body = response.text[:MAX_ERROR_BODY]
        logger.warning(f"Producer {operation} reported failure: {body}")
        raise UpstreamError(
            operation,
            f"Producer {operation} reported failure: {message or body}",
            status_code=response.status_code,
            body=body,
            code=ConsumerErrorCode.UPSTREAM_REJECTED,
        )

    def _record_error(self, operation: str) -> None:
        if self._metrics is not None:
            self._metrics.record_upstream_error(operation)

    async def subscribe(
        self, consumer_id: str, webhook_url: str, event_kinds: list[str]
    ) -> ProducerSubscriptionResult:
        """Register a callback URL (``POST /producer/subscribe``)."""
        request = ProducerSubscribeRequest(
            consumer_id=consumer_id,
            webhook_url=webhook_url,
            event_kinds=event_kinds,
        )
        response = await self._request(
            "subscribe",
            "POST",
            "/producer/subscribe",
            json=request.model_dump(by_alias=True),
        )
        return self._parse("subscribe", response, ProducerSubscriptionResult)

    async def get_secret(self, endpoint_id: str) -> SecretResult:
        """Fetch an endpoint's signing secret (``GET /producer/secret``)."""
        response = await self._request(
            "get_secret",
            "GET",
            "/producer/secret",
            params={"endpointId": endpoint_id},
        )
        return self._parse("get_secret", response, SecretResult)

    async def unsubscribe(self, endpoint_id: str) -> None:
        """Deregister an endpoint (``DELETE /producer/unsubscribe/{id}``)."""
        response = await self._request(
            "unsubscribe", "DELETE", f"/producer/unsubscribe/{endpoint_id}"
        )
        if not response.content:
            return
        result = self._parse("unsubscribe", response, ProducerAck)
        self._check_success("unsubscribe", response, result.success, result.message)

    async def get_endpoint(self, endpoint_id: str) -> Endpoint:
        """Look up one endpoint (``GET /producer/endpoint/{id}``)."""
        response = await self._request(
            "get_endpoint", "GET", f"/producer/endpoint/{endpoint_id}"
        )
        return self._parse("get_endpoint", response, Endpoint)

    async def list_endpoints(self) -> list[Endpoint]:
        """List every registered endpoint (``GET /producer/endpoints``)."""
        response = await self._request("list_endpoints", "GET", "/producer/endpoints")
        result = self._parse("list_endpoints", response, EndpointsResponse)
        self._check_success("list_endpoints", response, result.success, result.message)
        return result.endpoints
