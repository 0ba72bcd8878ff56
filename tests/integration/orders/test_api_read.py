from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders.dtos import CartLineDTO, PlaceOrderDTO

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def place(order_service, p1, p2):
    def _place(user, product=None, quantity=1, code=None):
        return order_service.place_order(
            PlaceOrderDTO(
                user_id=user.pk,
                items=[CartLineDTO(product_id=(product or p1).id, quantity=quantity)],
                shipping_address="1 Main St",
                discount_code=code,
            )
        )

    return _place


class TestRetrieveOrder:
    def test_owner_can_retrieve(self, auth_client, place, shopper):
        order = place(shopper, quantity=2)

        response = auth_client.get(f"{URL}{order.id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(order.id)
        assert data["order_number"].startswith("ORD-")
        item = data["items"][0]
        assert item["product_sku"] == "P1"
        assert Decimal(item["price_at_time"]) == Decimal("10.00")
        assert Decimal(item["subtotal"]) == Decimal("20.00")
        assert data["status_history"][0]["new_status"] == "pending"

    def test_other_user_gets_403(self, other_client, place, shopper):
        order = place(shopper)
        response = other_client.get(f"{URL}{order.id}/")
        assert response.status_code == 403

    def test_staff_can_retrieve_any(self, admin_client, place, shopper):
        order = place(shopper)
        response = admin_client.get(f"{URL}{order.id}/")
        assert response.status_code == 200

    def test_unknown_order_is_404(self, auth_client):
        response = auth_client.get(f"{URL}00000000-0000-0000-0000-000000000000/")
        assert response.status_code == 404

    def test_malformed_id_is_404(self, auth_client):
        response = auth_client.get(f"{URL}not-a-uuid/")
        assert response.status_code == 404


class TestListOrders:
    def test_lists_only_own_orders(self, auth_client, place, shopper, other_shopper):
        mine = place(shopper)
        place(other_shopper)

        response = auth_client.get(URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["id"] == str(mine.id)

    def test_staff_lists_everything(self, admin_client, place, shopper, other_shopper):
        place(shopper)
        place(other_shopper)
        response = admin_client.get(URL)
        assert response.json()["count"] == 2

    def test_filter_by_discount_code(self, auth_client, place, shopper, save10):
        place(shopper, code="SAVE10")
        place(shopper)

        response = auth_client.get(URL, {"discount_code": "save10"})

        assert response.json()["count"] == 1
        assert response.json()["results"][0]["discount_code"] == "SAVE10"

    def test_filter_by_total_range(self, auth_client, place, shopper, p2):
        place(shopper)
        place(shopper, product=p2)

        response = auth_client.get(URL, {"min_total": "20"})

        assert response.json()["count"] == 1
        assert Decimal(response.json()["results"][0]["total_amount"]) == Decimal("25.00")

    def test_filter_by_status(self, auth_client, place, shopper, order_service):
        cancelled = place(shopper)
        place(shopper)
        order_service.cancel_order(cancelled.id, shopper)

        response = auth_client.get(URL, {"status": "cancelled"})

        assert response.json()["count"] == 1
        assert response.json()["results"][0]["id"] == str(cancelled.id)

    def test_pagination(self, auth_client, place, shopper):
        for _ in range(3):
            place(shopper)

        response = auth_client.get(URL, {"page_size": 2})

        data = response.json()
        assert data["count"] == 3
        assert len(data["results"]) == 2
        assert data["next"] is not None

    def test_staff_filters_by_user(self, admin_client, place, shopper, other_shopper):
        place(shopper)
        place(shopper)
        theirs = place(other_shopper)

        response = admin_client.get(URL, {"user": other_shopper.pk})

        assert response.json()["count"] == 1
        assert response.json()["results"][0]["id"] == str(theirs.id)

    def test_shopper_cannot_filter_to_another_user(
        self, auth_client, place, shopper, other_shopper
    ):
        place(shopper)
        place(other_shopper)

        response = auth_client.get(URL, {"user": other_shopper.pk})
        assert response.json()["count"] == 0

        response = auth_client.get(URL, {"user": shopper.pk})
        assert response.json()["count"] == 1
