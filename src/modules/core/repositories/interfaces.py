"""Generic repository interface.

Services depend on these abstractions, never on the Django ORM directly,
so the checkout components can be exercised with in-memory stubs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base contract shared by every aggregate repository.

    ``T`` is the entity managed by the repository (``Order``, ``Product``,
    ``Discount``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""
