"""OrderService.place_order end to end against the database."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.db import OperationalError

from modules.core.models import OutboxEvent
from modules.discounts.constants import DiscountKind, RejectionReason
from modules.discounts.models import Discount
from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CartLineDTO, PlaceOrderDTO
from modules.orders.exceptions import (
    InactiveProduct,
    InsufficientStock,
    InvalidDiscountCode,
    InvalidQuantity,
    PersistenceConflict,
    ProductNotFound,
)
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


def _dto(user, lines, **kwargs) -> PlaceOrderDTO:
    return PlaceOrderDTO(
        user_id=user.pk,
        items=[CartLineDTO(product_id=p.id, quantity=q) for p, q in lines],
        shipping_address=kwargs.pop("shipping_address", "1 Main St"),
        **kwargs,
    )


def _stock(*products):
    for product in products:
        product.refresh_from_db()
    return [product.stock_quantity for product in products]


class TestHappyPath:
    def test_order_without_discount(self, order_service, shopper, p1, p2):
        order = order_service.place_order(_dto(shopper, [(p1, 2), (p2, 1)]))

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("45.00")
        assert order.discount_amount == Decimal("0.00")
        assert order.discount_code is None
        assert order.user_id == shopper.pk
        assert _stock(p1, p2) == [8, 4]

        items = {item.product_id: item for item in order.items.all()}
        assert items[p1.id].price_at_time == Decimal("10.00")
        assert items[p1.id].subtotal == Decimal("20.00")
        assert items[p2.id].price_at_time == Decimal("25.00")

    def test_order_with_percentage_discount(self, order_service, shopper, p1, p2, save10):
        order = order_service.place_order(
            _dto(shopper, [(p1, 2), (p2, 1)], discount_code="SAVE10")
        )

        assert order.discount_code == "SAVE10"
        assert order.discount_amount == Decimal("4.50")
        assert order.total_amount == Decimal("40.50")
        save10.refresh_from_db()
        assert save10.used_count == 1

    def test_discount_code_is_case_insensitive(self, order_service, shopper, p1, save10):
        order = order_service.place_order(_dto(shopper, [(p1, 1)], discount_code="save10"))
        assert order.discount_code == "SAVE10"

    def test_fixed_discount_never_exceeds_total(self, order_service, shopper, p1):
        Discount.objects.create(
            code="BIGFIXED", kind=DiscountKind.FIXED, fixed_amount=Decimal("50.00")
        )
        order = order_service.place_order(
            _dto(shopper, [(p1, 1)], discount_code="BIGFIXED")
        )
        assert order.discount_amount == Decimal("10.00")
        assert order.total_amount == Decimal("0.00")

    def test_initial_history_and_outbox(self, order_service, shopper, p1):
        order = order_service.place_order(_dto(shopper, [(p1, 1)]))

        history = list(order.status_history.all())
        assert len(history) == 1
        assert history[0].old_status is None
        assert history[0].new_status == OrderStatus.PENDING

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderPlaced"
        assert event.topic == "orders"

    def test_duplicate_lines_are_merged(self, order_service, shopper, p1):
        order = order_service.place_order(_dto(shopper, [(p1, 2), (p1, 3)]))

        assert order.items.count() == 1
        assert order.items.get().quantity == 5
        assert _stock(p1) == [5]


class TestPriceFreeze:
    def test_catalog_price_change_does_not_touch_existing_orders(
        self, order_service, shopper, p1
    ):
        order = order_service.place_order(_dto(shopper, [(p1, 2)]))

        p1.price = Decimal("99.00")
        p1.save()

        order.refresh_from_db()
        item = order.items.get()
        assert item.price_at_time == Decimal("10.00")
        assert order.total_amount == Decimal("20.00")

    def test_new_orders_use_the_current_price(self, order_service, shopper, p1):
        p1.price = Decimal("12.00")
        p1.save()

        order = order_service.place_order(_dto(shopper, [(p1, 1)]))
        assert order.total_amount == Decimal("12.00")


class TestRejections:
    def test_expired_code_leaves_stock_untouched(
        self, order_service, shopper, p1, p2, expired2020
    ):
        with pytest.raises(InvalidDiscountCode) as exc_info:
            order_service.place_order(
                _dto(shopper, [(p1, 2), (p2, 1)], discount_code="EXPIRED2020")
            )

        assert exc_info.value.reason == RejectionReason.EXPIRED
        assert _stock(p1, p2) == [10, 5]
        assert Order.objects.count() == 0
        expired2020.refresh_from_db()
        assert expired2020.used_count == 0

    def test_unknown_code(self, order_service, shopper, p1):
        with pytest.raises(InvalidDiscountCode) as exc_info:
            order_service.place_order(_dto(shopper, [(p1, 1)], discount_code="NOPE"))
        assert exc_info.value.reason == RejectionReason.NOT_FOUND
        assert _stock(p1) == [10]

    def test_insufficient_stock_reports_line(self, order_service, shopper, p1, p3):
        with pytest.raises(InsufficientStock) as exc_info:
            order_service.place_order(_dto(shopper, [(p1, 1), (p3, 3)]))

        assert exc_info.value.product_id == str(p3.id)
        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert _stock(p1, p3) == [10, 2]
        assert Order.objects.count() == 0

    def test_last_unit_cannot_cover_two(self, order_service, shopper, p3):
        p3.stock_quantity = 1
        p3.save(update_fields=["stock_quantity"])

        with pytest.raises(InsufficientStock) as exc_info:
            order_service.place_order(_dto(shopper, [(p3, 2)]))

        assert exc_info.value.available == 1
        assert exc_info.value.requested == 2
        assert _stock(p3) == [1]

    def test_unknown_product(self, order_service, shopper, p1):
        dto = PlaceOrderDTO(
            user_id=shopper.pk,
            items=[
                CartLineDTO(product_id=p1.id, quantity=1),
                CartLineDTO(product_id=uuid4(), quantity=1),
            ],
            shipping_address="1 Main St",
        )
        with pytest.raises(ProductNotFound):
            order_service.place_order(dto)
        assert _stock(p1) == [10]

    def test_inactive_product(self, order_service, shopper, inactive_product):
        with pytest.raises(InactiveProduct):
            order_service.place_order(_dto(shopper, [(inactive_product, 1)]))
        assert _stock(inactive_product) == [50]

    def test_zero_quantity(self, order_service, shopper, p1):
        with pytest.raises(InvalidQuantity):
            order_service.place_order(_dto(shopper, [(p1, 0)]))
        assert Order.objects.count() == 0

    def test_below_minimum(self, order_service, shopper, p1):
        Discount.objects.create(
            code="BIGSPEND",
            kind=DiscountKind.FIXED,
            fixed_amount=Decimal("5.00"),
            min_order_amount=Decimal("100.00"),
        )
        with pytest.raises(InvalidDiscountCode) as exc_info:
            order_service.place_order(_dto(shopper, [(p1, 2)], discount_code="BIGSPEND"))
        assert exc_info.value.reason == RejectionReason.BELOW_MINIMUM
        assert _stock(p1) == [10]


class TestDiscountLimits:
    def test_max_uses_is_never_exceeded(self, order_service, shopper, other_shopper, p1):
        flash = Discount.objects.create(
            code="FLASH",
            kind=DiscountKind.PERCENTAGE,
            percentage=Decimal("50.00"),
            max_uses=1,
        )
        order_service.place_order(_dto(shopper, [(p1, 1)], discount_code="FLASH"))

        with pytest.raises(InvalidDiscountCode) as exc_info:
            order_service.place_order(
                _dto(other_shopper, [(p1, 1)], discount_code="FLASH")
            )

        assert exc_info.value.reason == RejectionReason.USAGE_LIMIT_REACHED
        flash.refresh_from_db()
        assert flash.used_count == 1
        assert _stock(p1) == [9]

    def test_single_use_per_user(self, order_service, shopper, other_shopper, p1):
        Discount.objects.create(
            code="WELCOME",
            kind=DiscountKind.PERCENTAGE,
            percentage=Decimal("15.00"),
            single_use_per_user=True,
        )
        order_service.place_order(_dto(shopper, [(p1, 1)], discount_code="WELCOME"))

        with pytest.raises(InvalidDiscountCode) as exc_info:
            order_service.place_order(_dto(shopper, [(p1, 1)], discount_code="WELCOME"))
        assert exc_info.value.reason == RejectionReason.ALREADY_USED

        order = order_service.place_order(
            _dto(other_shopper, [(p1, 1)], discount_code="WELCOME")
        )
        assert order.discount_code == "WELCOME"

    def test_cancelled_order_frees_single_use(self, order_service, shopper, p1):
        Discount.objects.create(
            code="WELCOME",
            kind=DiscountKind.PERCENTAGE,
            percentage=Decimal("15.00"),
            single_use_per_user=True,
        )
        first = order_service.place_order(
            _dto(shopper, [(p1, 1)], discount_code="WELCOME")
        )
        order_service.cancel_order(first.id, shopper)

        second = order_service.place_order(
            _dto(shopper, [(p1, 1)], discount_code="WELCOME")
        )
        assert second.discount_code == "WELCOME"


class StaleDiscountRepository(DiscountDjangoRepository):
    """Returns the code as it looked before another checkout took its last use."""

    def get_by_code_for_update(self, code):
        discount = super().get_by_code_for_update(code)
        Discount.objects.filter(id=discount.id).update(used_count=discount.max_uses)
        return discount


class TestRedemptionGuard:
    def test_last_use_taken_after_validation_aborts_order(self, shopper, p1, p2):
        flash = Discount.objects.create(
            code="FLASH",
            kind=DiscountKind.PERCENTAGE,
            percentage=Decimal("50.00"),
            max_uses=1,
        )
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            discount_repository=StaleDiscountRepository(),
        )

        with pytest.raises(InvalidDiscountCode) as exc_info:
            service.place_order(
                _dto(shopper, [(p1, 1), (p2, 1)], discount_code="FLASH")
            )

        assert exc_info.value.reason == RejectionReason.USAGE_LIMIT_REACHED
        assert _stock(p1, p2) == [10, 5]
        assert Order.objects.count() == 0


class TestIdempotency:
    def test_replayed_key_returns_same_order(self, order_service, shopper, p1):
        first = order_service.place_order(_dto(shopper, [(p1, 2)], idempotency_key="k-1"))
        second = order_service.place_order(
            _dto(shopper, [(p1, 2)], idempotency_key="k-1")
        )

        assert first.id == second.id
        assert Order.objects.count() == 1
        assert _stock(p1) == [8]

    def test_same_key_different_users(self, order_service, shopper, other_shopper, p1):
        first = order_service.place_order(_dto(shopper, [(p1, 1)], idempotency_key="k"))
        second = order_service.place_order(
            _dto(other_shopper, [(p1, 1)], idempotency_key="k")
        )
        assert first.id != second.id


class TestPersistenceConflict:
    def test_database_abort_becomes_retryable_conflict(
        self, order_service, shopper, p1, save10
    ):
        with patch(
            "modules.orders.repositories.django_repository.OrderDjangoRepository.create",
            side_effect=OperationalError("deadlock detected"),
        ):
            with pytest.raises(PersistenceConflict) as exc_info:
                order_service.place_order(
                    _dto(shopper, [(p1, 2)], discount_code="SAVE10")
                )

        assert exc_info.value.retryable is True
        assert _stock(p1) == [10]
        save10.refresh_from_db()
        assert save10.used_count == 0
        assert Order.objects.count() == 0
