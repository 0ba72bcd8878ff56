"""Discount Evaluator: eligibility checks and discount arithmetic.

``validate`` runs the eligibility checklist in a fixed order and stops at
the first failure, so the rejection reason for a given code and cart is
always the same:

1. the code exists, is active and has not expired;
2. the proposed total reaches ``min_order_amount`` (when set);
3. ``used_count`` is below ``max_uses`` (when set);
4. for single-use codes, the user has no earlier non-cancelled order
   carrying the code.

``redeem`` must be called inside the same atomic block that persists the
order, so the usage increment and the order write commit or abort together.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Optional

import structlog

from modules.discounts.constants import CENTS, DiscountKind, RejectionReason
from modules.discounts.exceptions import InvalidDiscountCode

if TYPE_CHECKING:
    from modules.discounts.models import Discount
    from modules.discounts.repositories.interfaces import (
        IDiscountRepository,
        IRedemptionLookup,
    )

logger = structlog.get_logger(__name__)


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class DiscountEvaluator:
    def __init__(
        self,
        discount_repository: IDiscountRepository,
        redemption_lookup: IRedemptionLookup,
    ) -> None:
        self._discount_repo = discount_repository
        self._redemptions = redemption_lookup

    def validate(
        self,
        code: str,
        proposed_total: Decimal,
        user_id: int,
        *,
        for_update: bool = False,
        now: Optional[datetime] = None,
    ) -> Discount:
        """Return the discount for ``code`` or raise ``InvalidDiscountCode``.

        With ``for_update=True`` the discount row stays locked until the
        surrounding transaction ends, which serializes concurrent checkouts
        competing for the last uses of a limited code.
        """
        log = logger.bind(code=code, user_id=user_id)

        if for_update:
            discount = self._discount_repo.get_by_code_for_update(code)
        else:
            discount = self._discount_repo.get_by_code(code)

        reason: Optional[RejectionReason] = None
        message: Optional[str] = None

        if discount is None:
            reason = RejectionReason.NOT_FOUND
        elif not discount.is_active:
            reason = RejectionReason.INACTIVE
        elif discount.is_expired(now):
            reason = RejectionReason.EXPIRED
        elif (
            discount.min_order_amount is not None
            and proposed_total < discount.min_order_amount
        ):
            reason = RejectionReason.BELOW_MINIMUM
            message = (
                f"Minimum order amount of ${discount.min_order_amount} required."
            )
        elif not discount.has_uses_left:
            reason = RejectionReason.USAGE_LIMIT_REACHED
        elif discount.single_use_per_user and self._redemptions.user_has_redeemed(
            user_id, discount.code
        ):
            reason = RejectionReason.ALREADY_USED

        if reason is not None:
            log.info("discount.rejected", reason=reason.value)
            raise InvalidDiscountCode(code, reason, message)

        return discount

    @staticmethod
    def apply(discount: Discount, total: Decimal) -> Decimal:
        """Discount amount for ``total``, never larger than ``total`` itself."""
        if discount.kind == DiscountKind.PERCENTAGE:
            amount = to_money(total * discount.percentage / Decimal("100"))
        else:
            amount = to_money(discount.fixed_amount)
        return min(amount, total)

    def redeem(self, discount: Discount) -> None:
        """Consume one use of ``discount``.

        Raises:
            InvalidDiscountCode: the usage limit was reached concurrently.
        """
        if not self._discount_repo.increment_usage(discount):
            raise InvalidDiscountCode(
                discount.code, RejectionReason.USAGE_LIMIT_REACHED
            )
        logger.info(
            "discount.redeemed",
            discount_id=str(discount.id),
            code=discount.code,
            used_count=discount.used_count,
        )
