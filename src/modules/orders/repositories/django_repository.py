"""Django ORM implementation of the Order repository.

Write methods do not open their own transactions: checkout and
cancellation run them inside the service's atomic block, so the order,
its items, its history and its outbox rows commit together with the stock
and discount changes.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> Order:
        discount_amount = data.get("discount_amount") or Decimal("0.00")
        order = Order(
            user_id=data["user_id"],
            shipping_address=data["shipping_address"],
            discount_code=data.get("discount_code"),
            discount_amount=discount_amount,
            notes=data.get("notes", ""),
            idempotency_key=data.get("idempotency_key"),
        )
        order.save()

        subtotal = Decimal("0.00")
        items = data["items"]
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                price_at_time=item_data["price_at_time"],
            )
            item.save()
            subtotal += item.subtotal

        order.total_amount = subtotal - discount_amount
        order.save(update_fields=["total_amount"])

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(items),
            total_amount=str(order.total_amount),
        )
        return order

    def _with_relations(self) -> QuerySet:
        return (
            Order.objects.alive()
            .select_related("user")
            .prefetch_related("items__product", "status_history")
        )

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with items and history prefetched; ``None`` if unknown."""
        try:
            return self._with_relations().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = self._with_relations()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: Order) -> Order:
        """Persist an order and flush its domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user_id=user_id,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return (
                Order.objects.select_for_update()
                .alive()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        return (
            self._with_relations()
            .filter(user_id=user_id, idempotency_key=key)
            .first()
        )

    def user_has_redeemed(self, user_id: int, code: str) -> bool:
        return (
            Order.objects.alive()
            .filter(user_id=user_id, discount_code__iexact=code)
            .exclude(status=OrderStatus.CANCELLED)
            .exists()
        )


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    return json.loads(json.dumps(_normalize_for_json(asdict(event))))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
