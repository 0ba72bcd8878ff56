"""Order Query Service: read access and admin status changes.

Ownership rule: a user sees only their own orders; staff see all of them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.orders.constants import OrderStatus
from modules.orders.events import OrderStatusChanged
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound, PermissionDenied
from modules.orders.services import Actor, can_access

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderQueryService:
    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    def get_order(self, order_id: UUID | str, actor: Actor) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if not can_access(order, actor):
            raise PermissionDenied(f"Not allowed to view order {order_id}.")
        return order

    def list_orders(
        self, actor: Actor, filters: Optional[Dict[str, Any]] = None
    ) -> "QuerySet[Order]":
        queryset = self._order_repo.list(filters)
        if not actor.is_staff:
            queryset = queryset.filter(user_id=actor.pk)
        return queryset

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID | str,
        new_status: str,
        actor: Actor,
        notes: str = "",
    ) -> Order:
        """Move an order along the fulfilment state machine (staff only).

        Cancellation is not handled here because it must also return stock;
        see ``OrderService.cancel_order``.

        Raises:
            PermissionDenied: caller is not staff.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status or transition not allowed.
        """
        if not actor.is_staff:
            raise PermissionDenied("Only staff can change order status.")

        new_status = (new_status or "").strip().lower()
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(f"Unknown status: {new_status!r}.")
        if new_status == OrderStatus.CANCELLED:
            raise InvalidOrderStatus("Use the cancel operation to cancel orders.")

        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id), old_status=order.status, new_status=new_status
        )

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}."
            )

        old_status = order.status
        order.status = new_status
        order.add_domain_event(OrderStatusChanged(aggregate_id=order.id))
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
            user_id=actor.pk,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order_id))
