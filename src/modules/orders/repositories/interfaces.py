"""Order repository interface.

The service layer depends exclusively on this contract.  ``create`` writes
the order row and all its items in one call; callers provide the
surrounding transaction that also covers stock and discount changes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items.

        ``data`` keys: ``user_id``, ``shipping_address``, ``items`` (dicts
        with ``product_id``, ``quantity``, ``price_at_time``), and optionally
        ``discount_code``, ``discount_amount``, ``notes``,
        ``idempotency_key``.
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "QuerySet[Order]":
        """List orders with optional filters."""

    @abstractmethod
    def save(self, entity: Order) -> Order:
        """Persist the order and write its pending domain events to the outbox."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        """Retrieve the order a user already placed with ``key``."""

    @abstractmethod
    def user_has_redeemed(self, user_id: int, code: str) -> bool:
        """Whether the user has a non-cancelled order carrying ``code``."""
