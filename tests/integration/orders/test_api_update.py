from __future__ import annotations

import pytest

from modules.orders.dtos import CartLineDTO, PlaceOrderDTO

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def order(order_service, shopper, p1):
    return order_service.place_order(
        PlaceOrderDTO(
            user_id=shopper.pk,
            items=[CartLineDTO(product_id=p1.id, quantity=3)],
            shipping_address="1 Main St",
        )
    )


class TestUpdateStatusAPI:
    def test_staff_moves_order_forward(self, admin_client, order):
        response = admin_client.patch(
            f"{URL}{order.id}/", {"status": "processing", "notes": "Packed"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "processing"

    def test_shopper_cannot_change_status(self, auth_client, order):
        response = auth_client.patch(
            f"{URL}{order.id}/", {"status": "processing"}, format="json"
        )
        assert response.status_code == 403

    def test_invalid_transition_is_400(self, admin_client, order):
        response = admin_client.patch(
            f"{URL}{order.id}/", {"status": "delivered"}, format="json"
        )
        assert response.status_code == 400

    def test_cancel_via_patch_is_400(self, admin_client, order):
        response = admin_client.patch(
            f"{URL}{order.id}/", {"status": "cancelled"}, format="json"
        )
        assert response.status_code == 400

    def test_unknown_status_value_is_400(self, admin_client, order):
        response = admin_client.patch(
            f"{URL}{order.id}/", {"status": "lost"}, format="json"
        )
        assert response.status_code == 400

    def test_unknown_order_is_404(self, admin_client):
        response = admin_client.patch(
            f"{URL}00000000-0000-0000-0000-000000000000/",
            {"status": "processing"},
            format="json",
        )
        assert response.status_code == 404


class TestCancelAPI:
    def test_owner_cancels_and_stock_returns(self, auth_client, order, p1):
        response = auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        p1.refresh_from_db()
        assert p1.stock_quantity == 10

    def test_other_user_gets_403(self, other_client, order, p1):
        response = other_client.post(f"{URL}{order.id}/cancel/", {}, format="json")

        assert response.status_code == 403
        p1.refresh_from_db()
        assert p1.stock_quantity == 7

    def test_second_cancel_is_400(self, auth_client, order):
        auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")
        response = auth_client.post(f"{URL}{order.id}/cancel/", {}, format="json")
        assert response.status_code == 400

    def test_unknown_order_is_404(self, auth_client):
        response = auth_client.post(
            f"{URL}00000000-0000-0000-0000-000000000000/cancel/", {}, format="json"
        )
        assert response.status_code == 404
