"""Product repository interface.

Catalog reads used by the Order Assembler and the stock mutations used by
the Inventory Ledger.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, "Product"]:
        """Point-in-time read of several products keyed by id.

        Soft-deleted products are omitted.
        """

    @abstractmethod
    def get_for_update(self, id: UUID | str) -> Optional["Product"]:
        """Retrieve a live product with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def decrement_stock(self, id: UUID | str, quantity: int) -> bool:
        """Subtract ``quantity`` only if enough stock remains.

        Returns ``False`` (and changes nothing) when the stock on hand is
        lower than ``quantity``.
        """

    @abstractmethod
    def increment_stock(self, id: UUID | str, quantity: int) -> bool:
        """Add ``quantity`` back to the product's stock."""
