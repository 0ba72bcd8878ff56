import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Discount",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=50, unique=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("percentage", "Percentage"),
                            ("fixed", "Fixed amount"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "percentage",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=5, null=True
                    ),
                ),
                (
                    "fixed_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                (
                    "min_order_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=10, null=True
                    ),
                ),
                ("max_uses", models.PositiveIntegerField(blank=True, null=True)),
                ("single_use_per_user", models.BooleanField(default=False)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("description", models.TextField(blank=True, default="")),
            ],
            options={
                "db_table": "discounts",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("fixed_amount__isnull", True),
                                ("kind", "percentage"),
                                ("percentage__isnull", False),
                            ),
                            models.Q(
                                ("fixed_amount__isnull", False),
                                ("kind", "fixed"),
                                ("percentage__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="discounts_kind_amount_exclusive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_uses__isnull", True),
                            ("used_count__lte", models.F("max_uses")),
                            _connector="OR",
                        ),
                        name="discounts_used_within_max",
                    ),
                ],
            },
        ),
    ]
