"""
Order Service Event Handler Component Tests

payment_service.payment.succeeded handling with at-least-once delivery.
"""
import uuid
from unittest.mock import AsyncMock

import pytest

from core.nats_client import Event, EventType, ServiceSource
from microservices.order_service.events import handlers
from microservices.order_service.events.handlers import (
    get_event_handlers,
    handle_payment_succeeded,
)
from microservices.order_service.protocols import PaymentCollaboratorError

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


@pytest.fixture(autouse=True)
def reset_processed_events():
    handlers.processed_event_ids.clear()
    yield
    handlers.processed_event_ids.clear()


def payment_event(order_id: str) -> Event:
    return Event(
        event_type=EventType.PAYMENT_SUCCEEDED,
        source=ServiceSource.PAYMENT_SERVICE,
        data={
            "order_id": order_id,
            "charge_reference": "ch_987",
            "receipt_url": "https://pay.example.com/receipts/ch_987",
        }
    )


class TestPaymentSucceededHandler:

    async def test_marks_order_paid(self, order_service, mock_repo):
        existing = mock_repo.set_order(status="PENDING")
        event = payment_event(existing.order_id)

        await handle_payment_succeeded(event.data, order_service, event.id)

        stored = await mock_repo.get_order(existing.order_id)
        assert stored.paid is True
        assert stored.charge_reference == "ch_987"
        assert handlers.is_event_processed(event.id)

    async def test_duplicate_event_creates_one_receipt(self, order_service, mock_repo, mock_event_bus):
        existing = mock_repo.set_order(status="PENDING")
        event = payment_event(existing.order_id)

        await handle_payment_succeeded(event.data, order_service, event.id)
        await handle_payment_succeeded(event.data, order_service, event.id)

        assert len(mock_repo.receipts_for(existing.order_id)) == 1
        assert mock_repo.get_call_count("mark_order_paid") == 1
        assert len(mock_event_bus.events_of_type("order.paid")) == 1

    async def test_redelivery_with_new_id_creates_one_receipt(self, order_service, mock_repo):
        existing = mock_repo.set_order(status="PENDING")

        for _ in range(3):
            event = payment_event(existing.order_id)
            await handle_payment_succeeded(event.data, order_service, event.id)

        assert mock_repo.get_call_count("mark_order_paid") == 3
        assert len(mock_repo.receipts_for(existing.order_id)) == 1

    async def test_unknown_order_is_dropped(self, order_service, mock_repo):
        event = payment_event(str(uuid.uuid4()))

        await handle_payment_succeeded(event.data, order_service, event.id)

        assert mock_repo.receipt_count == 0
        assert handlers.is_event_processed(event.id)

    async def test_invalid_payload_is_dropped(self):
        service = AsyncMock()

        await handle_payment_succeeded({"order_id": "ord_1"}, service, "evt_bad")

        service.mark_order_paid.assert_not_called()
        assert handlers.is_event_processed("evt_bad")

    async def test_storage_failure_propagates_for_redelivery(self, order_service, mock_repo):
        existing = mock_repo.set_order(status="PENDING")
        mock_repo.set_error(RuntimeError("connection reset"), "mark_order_paid")
        event = payment_event(existing.order_id)

        with pytest.raises(PaymentCollaboratorError):
            await handle_payment_succeeded(event.data, order_service, event.id)

        assert not handlers.is_event_processed(event.id)


class TestEventHandlerRegistry:

    async def test_registry_routes_payment_succeeded(self, order_service, mock_repo):
        existing = mock_repo.set_order(status="PENDING")
        registry = get_event_handlers(order_service)

        assert list(registry) == ["payment_service.payment.succeeded"]

        await registry["payment_service.payment.succeeded"](payment_event(existing.order_id))

        stored = await mock_repo.get_order(existing.order_id)
        assert stored.paid is True

    async def test_processed_ids_are_bounded(self):
        for i in range(10001):
            handlers.mark_event_processed(f"evt_{i}")

        assert len(handlers.processed_event_ids) <= 5001
