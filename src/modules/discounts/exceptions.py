"""Discount domain exceptions."""

from __future__ import annotations

from modules.discounts.constants import RejectionReason


class InvalidDiscountCode(Exception):
    """A discount code failed one of the eligibility checks.

    ``reason`` is a ``RejectionReason`` value identifying the first failing
    check; ``str(exc)`` is the message shown to the shopper.
    """

    def __init__(
        self, code: str, reason: RejectionReason, message: str | None = None
    ) -> None:
        self.code = code
        self.reason = RejectionReason(reason)
        super().__init__(message or self.reason.label)


class DiscountNotFound(Exception):
    """The requested discount record does not exist (admin operations)."""


class DiscountAlreadyExists(Exception):
    """Another discount already uses this code."""


class InvalidDiscountUpdate(Exception):
    """The edited discount would break the kind/amount or usage-limit rules."""
