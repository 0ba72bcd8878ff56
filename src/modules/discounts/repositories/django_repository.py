"""Django ORM implementation of the Discount repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F, Q
from django.utils import timezone

from modules.discounts.models import Discount, normalize_code
from modules.discounts.repositories.interfaces import IDiscountRepository

logger = structlog.get_logger(__name__)


class DiscountDjangoRepository(IDiscountRepository):
    def get_by_id(self, id: str) -> Optional[Discount]:
        try:
            return Discount.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Discount]:
        queryset = Discount.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(
        self, entity: Discount, update_fields: Optional[List[str]] = None
    ) -> Discount:
        entity.save(update_fields=update_fields)
        logger.info("discount.saved", discount_id=str(entity.id), code=entity.code)
        return entity

    def get_by_id_for_update(self, id: str) -> Optional[Discount]:
        try:
            return Discount.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_code(self, code: str) -> Optional[Discount]:
        return Discount.objects.filter(code=normalize_code(code)).first()

    def get_by_code_for_update(self, code: str) -> Optional[Discount]:
        return (
            Discount.objects.select_for_update()
            .filter(code=normalize_code(code))
            .first()
        )

    def increment_usage(self, discount: Discount) -> bool:
        updated = (
            Discount.objects.filter(id=discount.id)
            .filter(Q(max_uses__isnull=True) | Q(used_count__lt=F("max_uses")))
            .update(used_count=F("used_count") + 1, updated_at=timezone.now())
        )
        if updated:
            discount.refresh_from_db(fields=["used_count", "updated_at"])
        return updated == 1
