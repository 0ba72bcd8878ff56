from __future__ import annotations

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.discounts.models import Discount
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration


class TestSeedData:
    def test_seeds_catalog_discounts_and_orders(self):
        out = StringIO()
        call_command("seed_data", orders=5, stdout=out)

        assert get_user_model().objects.filter(username="admin", is_staff=True).exists()
        assert Product.objects.count() == 10
        assert Discount.objects.filter(code="EXPIRED2020").exists()
        assert Order.objects.count() <= 5
        assert "Seed completed" in out.getvalue()

    def test_is_idempotent(self):
        call_command("seed_data", orders=3, stdout=StringIO())
        call_command("seed_data", orders=3, stdout=StringIO())

        assert Product.objects.count() == 10
        assert Discount.objects.count() == 5
        assert Order.objects.count() <= 3
