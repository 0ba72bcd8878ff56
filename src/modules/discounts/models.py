"""Discount codes redeemable at checkout.

Business rules implemented:
- ``code`` is unique and stored uppercase; look-ups are case-insensitive.
- ``percentage`` is set only for percentage discounts and ``fixed_amount``
  only for fixed discounts (CHECK constraint).
- ``used_count`` never exceeds ``max_uses`` when a limit is set (CHECK
  constraint; the increment itself is conditional, see the repository).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.discounts.constants import MAX_PERCENTAGE, DiscountKind


def normalize_code(code: str) -> str:
    return code.strip().upper()


class Discount(BaseModel):
    code = models.CharField(max_length=50, unique=True)
    kind = models.CharField(max_length=20, choices=DiscountKind.choices)
    percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    fixed_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    min_order_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    single_use_per_user = models.BooleanField(default=False)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    used_count = models.PositiveIntegerField(default=0)
    description = models.TextField(blank=True, default="")

    class Meta:
        db_table = "discounts"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(
                        kind=DiscountKind.PERCENTAGE,
                        percentage__isnull=False,
                        fixed_amount__isnull=True,
                    )
                    | models.Q(
                        kind=DiscountKind.FIXED,
                        fixed_amount__isnull=False,
                        percentage__isnull=True,
                    )
                ),
                name="discounts_kind_amount_exclusive",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(max_uses__isnull=True)
                    | models.Q(used_count__lte=models.F("max_uses"))
                ),
                name="discounts_used_within_max",
            ),
        ]

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())

    @property
    def has_uses_left(self) -> bool:
        return self.max_uses is None or self.used_count < self.max_uses

    def clean(self) -> None:
        super().clean()
        if self.kind == DiscountKind.PERCENTAGE:
            if self.fixed_amount is not None:
                raise ValidationError(
                    {"fixed_amount": "Percentage discounts cannot set fixed_amount."}
                )
            if self.percentage is None or not (
                Decimal("0") < self.percentage <= MAX_PERCENTAGE
            ):
                raise ValidationError(
                    {"percentage": "Percentage must be between 0 and 100."}
                )
        elif self.kind == DiscountKind.FIXED:
            if self.percentage is not None:
                raise ValidationError(
                    {"percentage": "Fixed discounts cannot set percentage."}
                )
            if self.fixed_amount is None or self.fixed_amount <= 0:
                raise ValidationError(
                    {"fixed_amount": "Fixed amount must be greater than zero."}
                )
        if self.max_uses is not None and self.max_uses < self.used_count:
            raise ValidationError(
                {"max_uses": f"max_uses cannot be lower than used_count ({self.used_count})."}
            )

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.code
