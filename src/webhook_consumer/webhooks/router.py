"""FastAPI routers for inbound deliveries, subscriptions and consumer status.

Every endpoint answers with the ``{success, message}`` envelope. Business
failures are returned as 400 with the error code attached; only unknown
consumers on the status endpoints use the registry status (404).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from webhook_consumer.errors import (
    ConsumerErrorCode,
    ResyncFailed,
    SubscriptionFailed,
    UpstreamError,
    create_error_response,
    get_error_status,
)
from webhook_consumer.webhooks.models import (
    ConsumerStatusRequest,
    ConsumerStatusResponse,
    EndpointListResponse,
    OperationResponse,
    ResyncResponse,
    SubscribeRequest,
    SubscriptionResponse,
)

if TYPE_CHECKING:
    from webhook_consumer.webhooks.receiver import WebhookReceiver
    from webhook_consumer.webhooks.status import ConsumerStatusGate
    from webhook_consumer.webhooks.subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

__all__ = [
    "WEBHOOK_ROUTES",
    "create_consumer_router",
    "create_subscription_router",
    "create_webhook_router",
    "endpoint_identity",
]

# Callback paths under /webhooks/{consumer}/
WEBHOOK_ROUTES: tuple[str, ...] = ("transactions", "domain", "receive", "order-completed")

BAD_REQUEST = 400

_FAILURE_RESPONSES = {400: {"description": "Operation failed", "model": OperationResponse}}


def endpoint_identity(request: Request, public_base_url: str | None = None) -> str:
    """Fully-qualified callback URL a delivery was addressed to.

    Uses the configured public base URL so the identity matches what was
    registered with the producer even behind a proxy.
    """
    base = public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}{request.url.path}"


def _failure(code: ConsumerErrorCode, message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=BAD_REQUEST, content=create_error_response(code, message)
    )


# =============================================================================
# Inbound Deliveries
# =============================================================================


def create_webhook_router(
    receiver: WebhookReceiver,
    public_base_url: str | None = None,
) -> APIRouter:
    """Create the router the producer delivers to.

    Args:
        receiver: Delivery pipeline
        public_base_url: Externally reachable base URL of this service

    Returns:
        Configured APIRouter with ``POST /webhooks/{consumer}/<kind>`` routes
    """
    router = APIRouter(prefix="/webhooks", tags=["webhooks"])

    async def receive_webhook(consumer: str, request: Request) -> JSONResponse:
        """Verify and dispatch one delivery."""
        # Read once; the same bytes feed the HMAC and the JSON decoder
        raw_body = await request.body()
        outcome = await receiver.receive(
            consumer,
            endpoint_identity(request, public_base_url),
            raw_body,
            request.headers,
        )
        status_code = 200 if outcome.accepted else BAD_REQUEST
        return JSONResponse(status_code=status_code, content=outcome.to_response())

    for route in WEBHOOK_ROUTES:
        router.add_api_route(
            f"/{{consumer}}/{route}",
            receive_webhook,
            methods=["POST"],
            response_model=OperationResponse,
            summary=f"Receive a {route} webhook",
            responses={
                200: {"description": "Webhook received and processed"},
                **_FAILURE_RESPONSES,
            },
            name=f"receive_{route.replace('-', '_')}",
        )

    return router


# =============================================================================
# Subscription Management
# =============================================================================


def create_subscription_router(manager: SubscriptionManager) -> APIRouter:
    """Create the subscription management router.

    Args:
        manager: Subscription manager backed by the producer client

    Returns:
        Configured APIRouter under ``/subscriptions``
    """
    router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

    @router.post(  # type: ignore[misc]
        "",
        response_model=SubscriptionResponse,
        summary="Subscribe a callback with the producer",
        responses=_FAILURE_RESPONSES,
    )
    async def subscribe(body: SubscribeRequest, request: Request) -> JSONResponse:
        """Register a callback path and store the endpoint's signing secret."""
        try:
            result = await manager.subscribe(
                body.consumer_id,
                body.callback_path,
                body.event_kinds,
                base_url=manager.public_base_url or str(request.base_url),
            )
        except SubscriptionFailed as e:
            logger.warning(f"Subscription for {body.consumer_id} failed: {e.message}")
            return _failure(e.code, e.message)

        response = SubscriptionResponse(
            success=True,
            message="Subscribed successfully",
            endpoint_id=result.endpoint_id,
            webhook_url=result.webhook_url,
        )
        return JSONResponse(content=response.model_dump(by_alias=True))

    @router.delete(  # type: ignore[misc]
        "/{endpoint_id}",
        response_model=OperationResponse,
        summary="Unsubscribe an endpoint",
        responses=_FAILURE_RESPONSES,
    )
    async def unsubscribe(endpoint_id: str) -> JSONResponse:
        """Deregister an endpoint and revoke its secret."""
        try:
            await manager.unsubscribe(endpoint_id)
        except SubscriptionFailed as e:
            logger.warning(f"Unsubscribe of {endpoint_id} failed: {e.message}")
            return _failure(e.code, e.message)

        response = OperationResponse(success=True, message="Unsubscribed successfully")
        return JSONResponse(content=response.model_dump(by_alias=True))

    @router.get(  # type: ignore[misc]
        "/resync",
        response_model=ResyncResponse,
        summary="Restore secrets for every registered endpoint",
        responses={400: {"description": "Resync stopped", "model": ResyncResponse}},
    )
    async def resync() -> JSONResponse:
        """Fetch and store the secret of every endpoint the producer knows."""
        try:
            report = await manager.resync_secrets()
        except ResyncFailed as e:
            response = ResyncResponse(
                success=False,
                message=e.message,
                restored=e.restored,
                pending=e.pending,
            )
            content = response.model_dump(by_alias=True)
            content.update(code=e.code.value)
            return JSONResponse(status_code=BAD_REQUEST, content=content)

        response = ResyncResponse(
            success=True,
            message=f"Resynced {len(report.restored)} webhook secrets",
            restored=report.restored,
            pending=report.pending,
        )
        return JSONResponse(content=response.model_dump(by_alias=True))

    @router.get(  # type: ignore[misc]
        "/endpoints",
        response_model=EndpointListResponse,
        summary="List endpoints registered with the producer",
        responses=_FAILURE_RESPONSES,
    )
    async def list_endpoints() -> JSONResponse:
        try:
            endpoints = await manager.list_endpoints()
        except UpstreamError as e:
            return _failure(e.code, e.message)

        response = EndpointListResponse(
            success=True,
            message=f"{len(endpoints)} endpoints",
            endpoints=endpoints,
        )
        return JSONResponse(content=response.model_dump(by_alias=True))

    return router


# =============================================================================
# Consumer Status
# =============================================================================


def create_consumer_router(gate: ConsumerStatusGate) -> APIRouter:
    """Create the router that switches consumers on and off.

    Args:
        gate: Status flags consulted by the receiver

    Returns:
        Configured APIRouter under ``/consumers``
    """
    router = APIRouter(prefix="/consumers", tags=["consumers"])

    def _unknown(consumer: str) -> JSONResponse:
        code = ConsumerErrorCode.CONSUMER_UNKNOWN
        return JSONResponse(
            status_code=get_error_status(code),
            content=create_error_response(code, f"Unknown consumer {consumer}"),
        )

    @router.post(  # type: ignore[misc]
        "/{consumer}/status",
        response_model=OperationResponse,
        summary="Enable or disable deliveries for a consumer",
        responses={404: {"description": "Unknown consumer"}},
    )
    async def set_status(consumer: str, body: ConsumerStatusRequest) -> JSONResponse:
        if not gate.is_known(consumer):
            return _unknown(consumer)

        gate.set_active(consumer, body.active)
        state = "enabled" if body.active else "disabled"
        response = OperationResponse(success=True, message=f"Consumer {consumer} {state}")
        return JSONResponse(content=response.model_dump(by_alias=True))

    @router.get(  # type: ignore[misc]
        "/{consumer}/status",
        response_model=ConsumerStatusResponse,
        summary="Get a consumer's delivery status",
        responses={404: {"description": "Unknown consumer"}},
    )
    async def get_status(consumer: str) -> JSONResponse:
        if not gate.is_known(consumer):
            return _unknown(consumer)

        response = ConsumerStatusResponse(
            success=True,
            consumer=consumer,
            active=gate.is_active(consumer),
        )
        return JSONResponse(content=response.model_dump(by_alias=True))

    return router
