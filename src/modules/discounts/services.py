"""Discount service layer: admin management and checkout previews.

Redemption during checkout goes through ``DiscountEvaluator`` directly,
inside the order transaction; this service never consumes a use.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.discounts.evaluator import DiscountEvaluator
from modules.discounts.exceptions import (
    DiscountAlreadyExists,
    DiscountNotFound,
    InvalidDiscountUpdate,
)
from modules.discounts.models import Discount

if TYPE_CHECKING:
    from modules.discounts.dtos import CreateDiscountDTO, UpdateDiscountDTO
    from modules.discounts.repositories.interfaces import (
        IDiscountRepository,
        IRedemptionLookup,
    )

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DiscountQuote:
    discount: Discount
    discount_amount: Decimal
    new_total: Decimal


class DiscountService:
    def __init__(
        self,
        repository: IDiscountRepository,
        redemption_lookup: IRedemptionLookup,
    ) -> None:
        self._repo = repository
        self._evaluator = DiscountEvaluator(repository, redemption_lookup)

    @transaction.atomic
    def create_discount(self, dto: CreateDiscountDTO) -> Discount:
        """Raises ``DiscountAlreadyExists`` when the code is taken."""
        log = logger.bind(code=dto.code)
        if self._repo.get_by_code(dto.code):
            log.warning("discount.duplicate_code")
            raise DiscountAlreadyExists(f"Discount code '{dto.code}' already exists.")

        discount = Discount(**dto.model_dump())
        discount = self._repo.save(discount)
        log.info("discount.created", discount_id=str(discount.id))
        return discount

    @transaction.atomic
    def update_discount(self, id: str, dto: UpdateDiscountDTO) -> Discount:
        """Apply the fields set on ``dto`` to discount ``id``.

        Only the changed columns are written, so a redemption committed while
        the admin edits the code keeps its ``used_count`` increment.

        Raises:
            DiscountNotFound: no discount with this id.
            DiscountAlreadyExists: the new code belongs to another discount.
            InvalidDiscountUpdate: the merged record breaks the model rules.
        """
        log = logger.bind(discount_id=str(id))
        discount = self._repo.get_by_id_for_update(id)
        if not discount:
            raise DiscountNotFound(f"Discount {id} not found.")

        changes = dto.model_dump(exclude_unset=True)
        new_code = changes.get("code")
        if new_code and new_code != discount.code:
            existing = self._repo.get_by_code(new_code)
            if existing and existing.id != discount.id:
                log.warning("discount.duplicate_code", code=new_code)
                raise DiscountAlreadyExists(
                    f"Discount code '{new_code}' already exists."
                )

        for field, value in changes.items():
            setattr(discount, field, value)
        try:
            discount.clean()
        except ValidationError as exc:
            raise InvalidDiscountUpdate(
                "; ".join(msg for msgs in exc.message_dict.values() for msg in msgs)
            ) from exc

        discount = self._repo.save(discount, update_fields=list(changes))
        log.info("discount.updated", fields=sorted(changes))
        return discount

    @transaction.atomic
    def deactivate_discount(self, id: str) -> Discount:
        discount = self._repo.get_by_id_for_update(id)
        if not discount:
            raise DiscountNotFound(f"Discount {id} not found.")
        discount.is_active = False
        discount = self._repo.save(discount, update_fields=["is_active"])
        logger.info("discount.deactivated", discount_id=str(id))
        return discount

    def list_discounts(self, filters: Optional[Dict[str, Any]] = None) -> List[Discount]:
        return self._repo.list(filters)

    def preview(self, code: str, cart_total: Decimal, user_id: int) -> DiscountQuote:
        """Quote what ``code`` would take off ``cart_total`` without redeeming it.

        Raises:
            InvalidDiscountCode: the code fails one of the eligibility checks.
        """
        discount = self._evaluator.validate(code, cart_total, user_id)
        amount = self._evaluator.apply(discount, cart_total)
        return DiscountQuote(
            discount=discount,
            discount_amount=amount,
            new_total=cart_total - amount,
        )
