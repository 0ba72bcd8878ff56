from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.discounts.constants import DiscountKind
from modules.discounts.models import Discount
from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def shopper():
    return User.objects.create_user(username="shopper", password="testpass123")


@pytest.fixture()
def other_shopper():
    return User.objects.create_user(username="other", password="testpass123")


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="staff", password="testpass123", is_staff=True
    )


@pytest.fixture()
def auth_client(shopper):
    """APIClient authenticated as ``shopper``."""
    client = APIClient()
    client.force_authenticate(user=shopper)
    return client


@pytest.fixture()
def other_client(other_shopper):
    client = APIClient()
    client.force_authenticate(user=other_shopper)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalog: P1 $10 x10, P2 $25 x5, P3 $100 x2
# ---------------------------------------------------------------------------


@pytest.fixture()
def p1():
    return Product.objects.create(
        sku="P1", name="Mug", price=Decimal("10.00"), stock_quantity=10,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def p2():
    return Product.objects.create(
        sku="P2", name="T-Shirt", price=Decimal("25.00"), stock_quantity=5,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def p3():
    return Product.objects.create(
        sku="P3", name="Cap", price=Decimal("100.00"), stock_quantity=2,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def inactive_product():
    return Product.objects.create(
        sku="OLD", name="Retired", price=Decimal("5.00"), stock_quantity=50,
        status=ProductStatus.INACTIVE,
    )


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


@pytest.fixture()
def save10():
    return Discount.objects.create(
        code="SAVE10", kind=DiscountKind.PERCENTAGE, percentage=Decimal("10.00")
    )


@pytest.fixture()
def expired2020():
    return Discount.objects.create(
        code="EXPIRED2020",
        kind=DiscountKind.PERCENTAGE,
        percentage=Decimal("20.00"),
        expires_at=datetime(2020, 12, 31, tzinfo=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        discount_repository=DiscountDjangoRepository(),
    )
