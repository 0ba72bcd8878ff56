"""Order DTOs for the service layer (Pydantic v2, immutable).

- ``CartLineDTO``: one requested product/quantity pair.  There is no price
  field; unit prices always come from the catalog.
- ``PlaceOrderDTO``: everything checkout needs from the caller.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

IDEMPOTENCY_KEY_MAX_LENGTH = 255


class CartLineDTO(BaseModel):
    """Quantity is range-checked by the Order Assembler, not here, so that
    a bad quantity surfaces as the typed ``InvalidQuantity`` error."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int


class PlaceOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    items: List[CartLineDTO]
    shipping_address: str
    discount_code: Optional[str] = None
    notes: str = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CartLineDTO]) -> List[CartLineDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("shipping_address")
    @classmethod
    def shipping_address_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Shipping address is required.")
        return v.strip()

    @field_validator("discount_code")
    @classmethod
    def blank_code_means_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("idempotency_key")
    @classmethod
    def idempotency_key_fits(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > IDEMPOTENCY_KEY_MAX_LENGTH:
            raise ValueError(
                f"Idempotency-Key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters."
            )
        return v
