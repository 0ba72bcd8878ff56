"""Order placement and cancellation (the write side of the Orders module).

``OrderService.place_order`` is the checkout transaction coordinator.  One
``transaction.atomic()`` block covers every effect of a checkout:

    Started -> Priced -> Reserved -> Discounted -> Persisted (commit)
       \\________________ any failure ________________/ -> Aborted

- Priced: ``OrderAssembler`` builds lines from catalog prices.
- Reserved: ``InventoryLedger`` decrements stock in product-id order.
- Discounted: ``DiscountEvaluator`` validates the code against the
  provisional total (row locked), computes the amount, consumes one use.
- Persisted: order row, items, initial history and outbox event.

A failure at any step raises out of the atomic block, so the database
discards the stock decrements, the discount usage and any order rows
written so far.  Database-level aborts are reported as the retryable
``PersistenceConflict``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Protocol
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction

from modules.discounts.evaluator import DiscountEvaluator
from modules.orders.assembler import OrderAssembler
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderPlaced
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    PermissionDenied,
    PersistenceConflict,
)
from modules.products.ledger import InventoryLedger

if TYPE_CHECKING:
    from modules.discounts.repositories.interfaces import IDiscountRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class Actor(Protocol):
    """The already-authenticated caller (a Django user)."""

    pk: int
    is_staff: bool


def can_access(order: Order, actor: Actor) -> bool:
    return actor.is_staff or order.user_id == actor.pk


class OrderService:
    """Application service for order commands.

    Receives repositories via constructor injection and builds the
    checkout collaborators on top of them.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        discount_repository: IDiscountRepository,
    ) -> None:
        self._order_repo = order_repository
        self._assembler = OrderAssembler(product_repository)
        self._ledger = InventoryLedger(product_repository)
        self._discounts = DiscountEvaluator(
            discount_repository, redemption_lookup=order_repository
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Turn a cart into a committed order, or change nothing at all.

        Returns the new order (or, for a replayed ``idempotency_key``, the
        order originally created with it).

        Raises:
            InvalidQuantity: a cart line quantity is out of range.
            OrderTotalTooLarge: the cart exceeds the largest recordable total.
            ProductNotFound: a product is unknown, deleted or inactive.
            InsufficientStock: a line asks for more than is on hand.
            InvalidDiscountCode: the supplied code is not applicable.
            PersistenceConflict: the database aborted the transaction
                (deadlock, lock timeout, concurrent duplicate); retryable.
        """
        log = logger.bind(
            user_id=dto.user_id,
            line_count=len(dto.items),
            discount_code=dto.discount_code,
        )
        log.info("order.placement_started")

        try:
            order = self._place_order_atomically(dto)
        except (OperationalError, IntegrityError) as exc:
            log.warning("order.placement_conflict", error=str(exc))
            raise PersistenceConflict(
                "The order could not be committed. Please retry."
            ) from exc

        log.info(
            "order.placed",
            order_id=str(order.id),
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def _place_order_atomically(self, dto: PlaceOrderDTO) -> Order:
        self._apply_lock_timeout()
        log = logger.bind(user_id=dto.user_id)

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(
                dto.user_id, dto.idempotency_key
            )
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        # Priced
        cart = self._assembler.assemble(dto.items)
        subtotal = cart.subtotal
        log.info("order.priced", subtotal=str(subtotal))

        # Reserved
        self._ledger.reserve_all(cart.lines)

        # Discounted
        discount_code: Optional[str] = None
        discount_amount = Decimal("0.00")
        if dto.discount_code:
            discount = self._discounts.validate(
                dto.discount_code, subtotal, dto.user_id, for_update=True
            )
            discount_amount = self._discounts.apply(discount, subtotal)
            self._discounts.redeem(discount)
            discount_code = discount.code
            log.info(
                "order.discount_applied",
                code=discount_code,
                discount_amount=str(discount_amount),
            )

        # Persisted
        order = self._order_repo.create(
            {
                "user_id": dto.user_id,
                "shipping_address": dto.shipping_address,
                "items": [
                    {
                        "product_id": line.product_id,
                        "quantity": line.quantity,
                        "price_at_time": line.price_at_time,
                    }
                    for line in cart.lines
                ],
                "discount_code": discount_code,
                "discount_amount": discount_amount,
                "notes": dto.notes,
                "idempotency_key": dto.idempotency_key,
            }
        )
        order.add_domain_event(OrderPlaced(aggregate_id=order.id))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order placed",
            user_id=dto.user_id,
        )
        return order

    @staticmethod
    def _apply_lock_timeout() -> None:
        """Bound row-lock waits for this transaction (PostgreSQL only)."""
        timeout_ms = settings.CHECKOUT_LOCK_TIMEOUT_MS
        connection = transaction.get_connection()
        if not timeout_ms or connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)", [f"{int(timeout_ms)}ms"]
            )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @transaction.atomic
    def cancel_order(self, order_id: UUID, actor: Actor, notes: str = "") -> Order:
        """Cancel an order and return its stock in the same transaction.

        The order row is locked first so two concurrent cancellations
        cannot both release the stock.  The discount use is not given back.

        Raises:
            OrderNotFound: order does not exist.
            PermissionDenied: caller is neither the owner nor staff.
            InvalidOrderStatus: the order can no longer be cancelled.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if not can_access(order, actor):
            raise PermissionDenied(f"Not allowed to cancel order {order_id}.")

        log = logger.bind(order_id=str(order_id), current_status=order.status)

        if not order.can_transition_to(OrderStatus.CANCELLED):
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        self._ledger.release_all(order.items.all())

        old_status = order.status
        order.status = OrderStatus.CANCELLED
        order.add_domain_event(OrderCancelled(aggregate_id=order.id))
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.CANCELLED,
            notes=notes or "Order cancelled",
            old_status=old_status,
            user_id=actor.pk,
        )

        log.info("order.cancelled")
        return self._order_repo.get_by_id(str(order_id))
