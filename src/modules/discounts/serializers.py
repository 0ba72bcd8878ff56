"""Discount DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.discounts.constants import DiscountKind
from modules.discounts.models import Discount


class DiscountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Discount
        fields = [
            "id",
            "code",
            "kind",
            "percentage",
            "fixed_amount",
            "min_order_amount",
            "max_uses",
            "used_count",
            "single_use_per_user",
            "expires_at",
            "is_active",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class CreateDiscountSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    kind = serializers.ChoiceField(choices=DiscountKind.choices)
    percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )
    fixed_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    min_order_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    max_uses = serializers.IntegerField(required=False, allow_null=True)
    single_use_per_user = serializers.BooleanField(required=False, default=False)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    description = serializers.CharField(required=False, default="", allow_blank=True)


class ValidateDiscountSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    cart_total = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0
    )


class UpdateDiscountSerializer(serializers.Serializer):
    """Editable discount fields. ``used_count`` is not editable."""

    code = serializers.CharField(max_length=50, required=False)
    kind = serializers.ChoiceField(choices=DiscountKind.choices, required=False)
    percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )
    fixed_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    min_order_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    max_uses = serializers.IntegerField(required=False, allow_null=True)
    single_use_per_user = serializers.BooleanField(required=False)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
