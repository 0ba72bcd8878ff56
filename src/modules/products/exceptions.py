"""Catalog and inventory exceptions.

Raised by the Order Assembler and the Inventory Ledger; the orders API
layer translates them into HTTP responses.
"""

from __future__ import annotations

from uuid import UUID


class ProductNotFound(Exception):
    """A referenced product does not exist or has been soft-deleted."""

    def __init__(self, product_id: UUID | str, message: str | None = None) -> None:
        self.product_id = str(product_id)
        super().__init__(message or f"Product {product_id} not found.")


class InactiveProduct(ProductNotFound):
    """The product exists but is not currently for sale."""

    def __init__(self, product_id: UUID | str) -> None:
        super().__init__(product_id, f"Product {product_id} is not available for sale.")


class InsufficientStock(Exception):
    """Not enough stock on hand to reserve the requested quantity."""

    def __init__(self, product_id: UUID | str, available: int, requested: int) -> None:
        self.product_id = str(product_id)
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}."
        )
