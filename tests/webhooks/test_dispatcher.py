"""Tests for event routing."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from webhook_consumer.observability.metrics import MetricsCollector
from webhook_consumer.webhooks.dispatcher import (
    DEFAULT_HANDLERS,
    EventDispatcher,
    create_default_dispatcher,
)
from webhook_consumer.webhooks.models import (
    EventType,
    TransactionPayload,
    UnknownEventPayload,
    parse_webhook_payload,
)


class TestEventDispatcher:
    """Tests for EventDispatcher routing."""

    @pytest.mark.asyncio
    async def test_routes_to_registered_handler(self) -> None:
        """A known kind invokes exactly its handler once."""
        dispatcher = EventDispatcher()
        deposit = AsyncMock()
        refund = AsyncMock()
        dispatcher.register(EventType.TRANSACTION_DEPOSIT, deposit)
        dispatcher.register("transaction.refund", refund)

        payload = TransactionPayload(event_type="transaction.deposit", amount="10")
        result = await dispatcher.route(payload)

        assert result.handled
        assert result.event_type == "transaction.deposit"
        deposit.assert_awaited_once_with(payload)
        refund.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_handler(self) -> None:
        """Plain functions are called without awaiting."""
        dispatcher = EventDispatcher()
        handler = MagicMock(return_value=None)
        dispatcher.register("domain.change", handler)

        payload = parse_webhook_payload(b'{"eventType": "domain.change"}')
        result = await dispatcher.route(payload)

        assert result.handled
        handler.assert_called_once_with(payload)

    @pytest.mark.asyncio
    async def test_decorator(self) -> None:
        """on() registers the decorated function."""
        dispatcher = EventDispatcher()
        seen: list[str] = []

        @dispatcher.on("user.created")
        async def on_user(payload: object) -> None:
            seen.append("user")

        await dispatcher.route(parse_webhook_payload(b'{"eventType": "user.created"}'))

        assert seen == ["user"]
        assert dispatcher.handles("user.created")

    @pytest.mark.asyncio
    async def test_unknown_kind_unhandled(self, caplog: pytest.LogCaptureFixture) -> None:
        """An unknown kind calls no handler and is logged, not raised."""
        dispatcher = create_default_dispatcher()
        spies = {name: AsyncMock() for name in dispatcher.event_types}
        for name, spy in spies.items():
            dispatcher.register(name, spy)

        payload = UnknownEventPayload(event_type="promotion.created")
        with caplog.at_level("INFO", logger="webhook_consumer.webhooks.dispatcher"):
            result = await dispatcher.route(payload)

        assert not result.handled
        assert result.event_type == "promotion.created"
        for spy in spies.values():
            spy.assert_not_called()
        assert "Unhandled event type: promotion.created" in caplog.text

    @pytest.mark.asyncio
    async def test_handler_exception_propagates(self) -> None:
        """Handler errors reach the caller."""
        dispatcher = EventDispatcher()
        dispatcher.register("order.completed", AsyncMock(side_effect=RuntimeError("boom")))

        with pytest.raises(RuntimeError, match="boom"):
            await dispatcher.route(
                parse_webhook_payload(b'{"eventType": "order.completed"}')
            )

    @pytest.mark.asyncio
    async def test_metrics_recorded(self) -> None:
        """Handled and unhandled kinds are counted."""
        metrics = MetricsCollector()
        dispatcher = create_default_dispatcher(metrics=metrics)

        await dispatcher.route(TransactionPayload(event_type="transaction.deposit"))
        await dispatcher.route(UnknownEventPayload(event_type="promotion.created"))

        assert metrics.sample(
            "webhook_consumer_events_total",
            {"event_type": "transaction.deposit", "handled": "true"},
        ) == 1.0
        assert metrics.sample(
            "webhook_consumer_events_total",
            {"event_type": "unknown", "handled": "false"},
        ) == 1.0


class TestDefaultDispatcher:
    """Tests for the default handler table."""

    def test_every_known_kind_has_a_handler(self) -> None:
        """create_default_dispatcher covers every EventType."""
        dispatcher = create_default_dispatcher()

        assert set(DEFAULT_HANDLERS) == set(EventType)
        assert dispatcher.event_types == sorted(e.value for e in EventType)

    @pytest.mark.asyncio
    async def test_default_handlers_log(self, caplog: pytest.LogCaptureFixture) -> None:
        """Default handlers log the event."""
        dispatcher = create_default_dispatcher()
        payload = parse_webhook_payload(
            b'{"eventType": "domain.change", "domainId": "d_1", "domainName": "example.org"}'
        )

        with caplog.at_level("INFO", logger="webhook_consumer.webhooks.dispatcher"):
            await dispatcher.route(payload)

        assert "domain.change for example.org (d_1)" in caplog.text
