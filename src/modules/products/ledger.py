"""Inventory Ledger: the only writer of ``Product.stock_quantity``.

Every reservation runs inside the caller's ``transaction.atomic()`` block, so
an abort anywhere in checkout rolls back all decrements made so far.  Rows
are locked in ascending product-id order; two orders touching overlapping
products therefore acquire their locks in the same sequence and cannot
deadlock on each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Protocol
from uuid import UUID

import structlog
from django.db import transaction

from modules.products.exceptions import InsufficientStock, ProductNotFound

if TYPE_CHECKING:
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockLine(Protocol):
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class Reservation:
    product_id: UUID
    quantity: int
    remaining: int


def _require_atomic_block() -> None:
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("Stock mutations must run inside transaction.atomic().")


def lock_order(lines: Iterable[StockLine]) -> List[StockLine]:
    """Return ``lines`` in the deterministic lock-acquisition order."""
    return sorted(lines, key=lambda line: str(line.product_id))


class InventoryLedger:
    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def reserve(self, product_id: UUID, quantity: int) -> Reservation:
        """Decrement stock by ``quantity`` if at least that much is on hand.

        Raises:
            ProductNotFound: the product does not exist (or was deleted).
            InsufficientStock: fewer than ``quantity`` units are available.
        """
        _require_atomic_block()

        product = self._product_repo.get_for_update(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        available = product.stock_quantity
        if available < quantity:
            logger.info(
                "inventory.reservation_rejected",
                product_id=str(product_id),
                requested=quantity,
                available=available,
            )
            raise InsufficientStock(product_id, available=available, requested=quantity)

        if not self._product_repo.decrement_stock(product_id, quantity):
            # Row changed between the locked read and the update (only possible
            # on backends without row locks); report what is there now.
            current = self._product_repo.get_by_id(str(product_id))
            raise InsufficientStock(
                product_id,
                available=current.stock_quantity if current else 0,
                requested=quantity,
            )

        reservation = Reservation(
            product_id=product_id,
            quantity=quantity,
            remaining=available - quantity,
        )
        logger.info(
            "inventory.stock_reserved",
            product_id=str(product_id),
            quantity=quantity,
            remaining=reservation.remaining,
        )
        return reservation

    def reserve_all(self, lines: Iterable[StockLine]) -> List[Reservation]:
        """Reserve every line in ascending product-id order.

        The first failure propagates; the enclosing atomic block discards the
        reservations already made for earlier lines.
        """
        return [self.reserve(line.product_id, line.quantity) for line in lock_order(lines)]

    def release(self, product_id: UUID, quantity: int) -> None:
        """Return ``quantity`` units to stock (order cancellation)."""
        _require_atomic_block()

        if not self._product_repo.increment_stock(product_id, quantity):
            raise ProductNotFound(product_id)
        logger.info(
            "inventory.stock_released",
            product_id=str(product_id),
            quantity=quantity,
        )

    def release_all(self, lines: Iterable[StockLine]) -> None:
        for line in lock_order(lines):
            self.release(line.product_id, line.quantity)
