"""Discount repositories package."""

from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.discounts.repositories.interfaces import (
    IDiscountRepository,
    IRedemptionLookup,
)

__all__ = ["DiscountDjangoRepository", "IDiscountRepository", "IRedemptionLookup"]
