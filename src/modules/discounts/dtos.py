"""Discount DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.discounts.constants import MAX_PERCENTAGE, DiscountKind


class CreateDiscountDTO(BaseModel):
    """Admin request to create a discount code.

    Validates that exactly the amount field matching ``kind`` is supplied.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    kind: DiscountKind
    percentage: Optional[Decimal] = None
    fixed_amount: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    max_uses: Optional[int] = None
    single_use_per_user: bool = False
    expires_at: Optional[datetime] = None
    description: str = ""

    @field_validator("code")
    @classmethod
    def code_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Code must not be empty.")
        return v.strip().upper()

    @field_validator("max_uses")
    @classmethod
    def max_uses_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("max_uses must be at least 1.")
        return v

    @model_validator(mode="after")
    def amount_matches_kind(self):
        if self.kind == DiscountKind.PERCENTAGE:
            if self.fixed_amount is not None:
                raise ValueError("Percentage discounts cannot set fixed_amount.")
            if self.percentage is None or not (0 < self.percentage <= MAX_PERCENTAGE):
                raise ValueError("Percentage must be between 0 and 100.")
        else:
            if self.percentage is not None:
                raise ValueError("Fixed discounts cannot set percentage.")
            if self.fixed_amount is None or self.fixed_amount <= 0:
                raise ValueError("Fixed amount must be greater than zero.")
        return self


class UpdateDiscountDTO(BaseModel):
    """Admin partial update of a discount.

    Only the fields the client sent are set (``model_dump(exclude_unset=True)``).
    ``used_count`` is not part of the schema: it only moves through
    redemption.  The kind/amount rules are checked against the merged record
    by ``Discount.clean``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: Optional[str] = None
    kind: Optional[DiscountKind] = None
    percentage: Optional[Decimal] = None
    fixed_amount: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    max_uses: Optional[int] = None
    single_use_per_user: Optional[bool] = None
    expires_at: Optional[datetime] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def code_must_not_be_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            raise ValueError("Code must not be empty.")
        return v.strip().upper()

    @field_validator("kind", "single_use_per_user", "is_active", "description")
    @classmethod
    def must_not_be_null(cls, v):
        if v is None:
            raise ValueError("Field may not be null.")
        return v

    @field_validator("max_uses")
    @classmethod
    def max_uses_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("max_uses must be at least 1.")
        return v
