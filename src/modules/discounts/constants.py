"""Discount domain constants."""

from decimal import Decimal

from django.db import models


class DiscountKind(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed amount"


class RejectionReason(models.TextChoices):
    """Why a code was refused, in checklist order.

    Labels double as the default user-facing message.
    """

    NOT_FOUND = "not_found", "Discount code not found."
    INACTIVE = "inactive", "Discount code is no longer active."
    EXPIRED = "expired", "Discount code has expired."
    BELOW_MINIMUM = "below_minimum", "Order total is below the minimum for this code."
    USAGE_LIMIT_REACHED = "usage_limit_reached", "Discount code usage limit reached."
    ALREADY_USED = "already_used", "You have already used this discount code."


CENTS = Decimal("0.01")
MAX_PERCENTAGE = Decimal("100")
