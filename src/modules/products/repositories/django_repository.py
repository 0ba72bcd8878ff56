"""Django ORM implementation of the Product repository.

Missing entities are reported as ``None``/``False``; the Order Assembler
and the Inventory Ledger decide which typed error to raise.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import F
from django.utils import timezone

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        products = Product.objects.alive().filter(id__in=list(ids))
        return {product.id: product for product in products}

    def get_for_update(self, id: UUID | str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def decrement_stock(self, id: UUID | str, quantity: int) -> bool:
        updated = Product.objects.filter(id=id, stock_quantity__gte=quantity).update(
            stock_quantity=F("stock_quantity") - quantity,
            updated_at=timezone.now(),
        )
        return updated == 1

    def increment_stock(self, id: UUID | str, quantity: int) -> bool:
        updated = Product.objects.filter(id=id).update(
            stock_quantity=F("stock_quantity") + quantity,
            updated_at=timezone.now(),
        )
        return updated == 1
