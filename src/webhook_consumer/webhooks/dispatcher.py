"""Routing of verified webhook payloads to per-event handlers.

The dispatcher matches ``event_type`` by exact string against its handler
table. Unknown kinds are logged and acknowledged so the producer does not
retry a delivery just because this consumer predates a new event kind.

Handlers may be plain functions or coroutines and receive the typed payload.
They must be idempotent: the producer delivers at least once and no
deduplication by message id happens here.

Example:
    >>> dispatcher = EventDispatcher()
    >>> @dispatcher.on("transaction.deposit")
    ... async def credit_account(payload: TransactionPayload) -> None:
    ...     ...
    >>> result = await dispatcher.route(payload)
    >>> result.handled
    True
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from webhook_consumer.webhooks.models import (
    DomainPayload,
    EventType,
    OrderCompletedPayload,
    TransactionPayload,
    UserCreatedPayload,
    WebhookPayload,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from webhook_consumer.observability.metrics import MetricsCollector

    EventHandler = Callable[[WebhookPayload], Union[Awaitable[None], None]]

logger = logging.getLogger(__name__)

__all__ = ["DispatchResult", "EventDispatcher", "create_default_dispatcher"]


@dataclass(frozen=True)
class DispatchResult:
    """Which branch a payload was routed to."""

    event_type: str
    handled: bool


class EventDispatcher:
    """Exact-match event routing table with a no-op unhandled branch."""

    def __init__(self, metrics: MetricsCollector | None = None) -> None:
        self._handlers: dict[str, EventHandler] = {}
        self._metrics = metrics

    def register(self, event_type: str | EventType, handler: EventHandler) -> None:
        """Register (or replace) the handler for an event kind."""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        if key in self._handlers:
            logger.debug(f"Replacing handler for {key}")
        self._handlers[key] = handler

    def on(
        self, event_type: str | EventType
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: EventHandler) -> EventHandler:
            self.register(event_type, handler)
            return handler

        return decorator

    @property
    def event_types(self) -> list[str]:
        return sorted(self._handlers)

    def handles(self, event_type: str) -> bool:
        return event_type in self._handlers

    async def route(self, payload: WebhookPayload) -> DispatchResult:
        """Route a verified payload to its handler.

        Handler exceptions propagate to the caller.
        """
        handler = self._handlers.get(payload.event_type)

        if handler is None:
            logger.info(f"Unhandled event type: {payload.event_type}")
            if self._metrics is not None:
                self._metrics.record_event(payload.event_type, handled=False)
            return DispatchResult(event_type=payload.event_type, handled=False)

        result: Any = handler(payload)
        if inspect.isawaitable(result):
            await result

        if self._metrics is not None:
            self._metrics.record_event(payload.event_type, handled=True)
        return DispatchResult(event_type=payload.event_type, handled=True)


# =============================================================================
# Default Handlers
# =============================================================================


async def handle_deposit(payload: TransactionPayload) -> None:
    logger.info(
        f"Processing transaction.deposit {payload.transaction_id} "
        f"for account {payload.account_id}: {payload.amount_formatted or payload.amount}"
    )


async def handle_withdrawal(payload: TransactionPayload) -> None:
    logger.info(
        f"Processing transaction.withdrawal {payload.transaction_id} "
        f"for account {payload.account_id}: {payload.amount_formatted or payload.amount}"
    )


async def handle_authorization(payload: TransactionPayload) -> None:
    logger.info(
        f"Processing transaction.authorization {payload.transaction_id} "
        f"for customer {payload.customer_id}"
    )


async def handle_refund(payload: TransactionPayload) -> None:
    logger.info(
        f"Processing transaction.refund {payload.transaction_id} "
        f"for account {payload.account_id}: {payload.amount_formatted or payload.amount}"
    )


async def handle_domain_change(payload: DomainPayload) -> None:
    logger.info(f"Processing domain.change for {payload.domain_name} ({payload.domain_id})")


async def handle_order_completed(payload: OrderCompletedPayload) -> None:
    logger.info(f"Processing order.completed {payload.order_id}")


async def handle_user_created(payload: UserCreatedPayload) -> None:
    logger.info(f"Processing user.created {payload.user_id}")


DEFAULT_HANDLERS: dict[EventType, Callable[[Any], Awaitable[None]]] = {
    EventType.TRANSACTION_DEPOSIT: handle_deposit,
    EventType.TRANSACTION_WITHDRAWAL: handle_withdrawal,
    EventType.TRANSACTION_AUTHORIZATION: handle_authorization,
    EventType.TRANSACTION_REFUND: handle_refund,
    EventType.DOMAIN_CHANGE: handle_domain_change,
    EventType.ORDER_COMPLETED: handle_order_completed,
    EventType.USER_CREATED: handle_user_created,
}


def create_default_dispatcher(metrics: MetricsCollector | None = None) -> EventDispatcher:
    """Dispatcher with a logging handler for every known event kind."""
    dispatcher = EventDispatcher(metrics=metrics)
    for event_type, handler in DEFAULT_HANDLERS.items():
        dispatcher.register(event_type, handler)
    return dispatcher
