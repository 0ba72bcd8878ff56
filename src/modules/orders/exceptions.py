"""Order domain exceptions.

Checkout failures form a closed taxonomy; every one of them aborts the
whole order transaction.  Only ``PersistenceConflict`` is safe to retry.
``ProductNotFound``/``InsufficientStock`` and ``InvalidDiscountCode`` are
owned by the products and discounts modules and re-exported here so the
API layer has a single import point.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from modules.discounts.exceptions import InvalidDiscountCode
from modules.orders.constants import MAX_LINE_QUANTITY, MAX_ORDER_AMOUNT
from modules.products.exceptions import (
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)

__all__ = [
    "InactiveProduct",
    "InsufficientStock",
    "InvalidDiscountCode",
    "InvalidOrderStatus",
    "InvalidQuantity",
    "OrderNotFound",
    "OrderTotalTooLarge",
    "PermissionDenied",
    "PersistenceConflict",
    "ProductNotFound",
]


class InvalidQuantity(Exception):
    """A cart line quantity is outside ``1..MAX_LINE_QUANTITY``."""

    def __init__(self, product_id: UUID | str, quantity: int) -> None:
        self.product_id = str(product_id)
        self.quantity = quantity
        super().__init__(
            f"Invalid quantity {quantity} for product {product_id}: "
            f"must be between 1 and {MAX_LINE_QUANTITY}."
        )


class OrderTotalTooLarge(Exception):
    """The priced cart exceeds the largest amount an order can record."""

    def __init__(self, total: Decimal) -> None:
        self.total = total
        self.max_total = MAX_ORDER_AMOUNT
        super().__init__(
            f"Order total {total} exceeds the maximum of {MAX_ORDER_AMOUNT}."
        )


class PersistenceConflict(Exception):
    """The order transaction was aborted by the database.

    Deadlocks, lock timeouts, serialization failures and concurrent
    duplicate submissions end up here.  Nothing was written; retrying is safe.
    """

    retryable = True


class PermissionDenied(Exception):
    """The caller neither owns the order nor is an administrator."""


class OrderNotFound(Exception):
    """The requested order does not exist or has been soft-deleted."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""
