from __future__ import annotations

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import relay_outbox_events
from modules.orders.dtos import CartLineDTO, PlaceOrderDTO
from modules.orders.handlers import OrderPlacedHandler

pytestmark = pytest.mark.integration


@pytest.fixture()
def order(order_service, shopper, p1):
    return order_service.place_order(
        PlaceOrderDTO(
            user_id=shopper.pk,
            items=[CartLineDTO(product_id=p1.id, quantity=1)],
            shipping_address="1 Main St",
        )
    )


class TestOutboxRelay:
    def test_order_placement_writes_pending_event(self, order):
        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.status == EventStatus.PENDING
        assert event.payload["aggregate_id"] == str(order.id)

    def test_relay_publishes_pending_events(self, order):
        result = relay_outbox_events()

        assert result == {"published": 1, "failed": 0}
        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None

    def test_relay_skips_published_events(self, order):
        relay_outbox_events()
        assert relay_outbox_events() == {"published": 0, "failed": 0}

    def test_handler_failure_marks_event_failed(self, order, monkeypatch):
        def explode(self, event):
            raise RuntimeError("downstream unavailable")

        monkeypatch.setattr(OrderPlacedHandler, "handle", explode)

        result = relay_outbox_events()

        assert result == {"published": 0, "failed": 1}
        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert "downstream unavailable" in event.error_message

    def test_failed_event_is_retried(self, order, monkeypatch):
        original = OrderPlacedHandler.handle

        def explode(self, event):
            raise RuntimeError("flaky")

        monkeypatch.setattr(OrderPlacedHandler, "handle", explode)
        relay_outbox_events()
        monkeypatch.setattr(OrderPlacedHandler, "handle", original)

        assert relay_outbox_events() == {"published": 1, "failed": 0}

    def test_task_runs_through_celery(self, order):
        result = relay_outbox_events.delay()
        assert result.get() == {"published": 1, "failed": 0}

    def test_unknown_event_type_is_not_marked_published(self):
        event = OutboxEvent.objects.create(
            event_type="NoSuchEvent",
            payload={},
            aggregate_id="a-1",
            topic="orders",
        )

        assert relay_outbox_events() == {"published": 0, "failed": 1}

        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert "NoSuchEvent" in event.error_message
