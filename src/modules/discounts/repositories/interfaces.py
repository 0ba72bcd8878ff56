"""Discount repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.discounts.models import Discount


class IDiscountRepository(IRepository["Discount"]):
    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List["Discount"]:
        """List discounts with optional ORM-style filters."""

    @abstractmethod
    def save(
        self, entity: "Discount", update_fields: Optional[List[str]] = None
    ) -> "Discount":
        """Persist ``entity``; with ``update_fields`` only those columns are written."""

    @abstractmethod
    def get_by_id_for_update(self, id: str) -> Optional["Discount"]:
        """Look-up by primary key holding a row lock until commit."""

    @abstractmethod
    def get_by_code(self, code: str) -> Optional["Discount"]:
        """Case-insensitive look-up by code."""

    @abstractmethod
    def get_by_code_for_update(self, code: str) -> Optional["Discount"]:
        """Case-insensitive look-up holding a row lock until commit."""

    @abstractmethod
    def increment_usage(self, discount: "Discount") -> bool:
        """Add one use, unless ``max_uses`` has already been reached.

        Returns ``False`` when the limit blocked the increment.
        """


class IRedemptionLookup(Protocol):
    """Answers the single-use-per-user question from order history."""

    def user_has_redeemed(self, user_id: int, code: str) -> bool: ...
