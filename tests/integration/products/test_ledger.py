"""InventoryLedger against the real Product table."""

from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest
from django.db import transaction

from modules.products.exceptions import InsufficientStock, ProductNotFound
from modules.products.ledger import InventoryLedger
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def ledger():
    return InventoryLedger(ProductDjangoRepository())


def _line(product, quantity):
    return SimpleNamespace(product_id=product.id, quantity=quantity)


class TestReserve:
    def test_decrements_stock(self, ledger, p1):
        with transaction.atomic():
            reservation = ledger.reserve(p1.id, 3)

        p1.refresh_from_db()
        assert p1.stock_quantity == 7
        assert reservation.remaining == 7

    def test_exact_stock_can_be_reserved(self, ledger, p3):
        with transaction.atomic():
            ledger.reserve(p3.id, 2)

        p3.refresh_from_db()
        assert p3.stock_quantity == 0

    def test_insufficient_stock_reports_quantities(self, ledger, p3):
        with pytest.raises(InsufficientStock) as exc_info:
            with transaction.atomic():
                ledger.reserve(p3.id, 3)

        assert exc_info.value.product_id == str(p3.id)
        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        p3.refresh_from_db()
        assert p3.stock_quantity == 2

    def test_unknown_product(self, ledger):
        with pytest.raises(ProductNotFound):
            with transaction.atomic():
                ledger.reserve(uuid4(), 1)

    def test_soft_deleted_product_cannot_be_reserved(self, ledger, p1):
        p1.delete()
        with pytest.raises(ProductNotFound):
            with transaction.atomic():
                ledger.reserve(p1.id, 1)

    def test_refuses_to_run_outside_a_transaction(self, ledger, p1, monkeypatch):
        monkeypatch.setattr(
            "modules.products.ledger.transaction.get_connection",
            lambda: SimpleNamespace(in_atomic_block=False),
        )

        with pytest.raises(RuntimeError):
            ledger.reserve(p1.id, 1)

        monkeypatch.undo()
        p1.refresh_from_db()
        assert p1.stock_quantity == 10


class TestReserveAll:
    def test_failure_rolls_back_earlier_lines(self, ledger, p1, p2, p3):
        with pytest.raises(InsufficientStock):
            with transaction.atomic():
                ledger.reserve_all(
                    [_line(p1, 1), _line(p2, 1), _line(p3, 3)]
                )

        for product, expected in ((p1, 10), (p2, 5), (p3, 2)):
            product.refresh_from_db()
            assert product.stock_quantity == expected

    def test_reserves_in_product_id_order(self, ledger, p1, p2, p3):
        with transaction.atomic():
            reservations = ledger.reserve_all(
                [_line(p3, 1), _line(p1, 1), _line(p2, 1)]
            )

        ids = [str(r.product_id) for r in reservations]
        assert ids == sorted(ids)


class TestRelease:
    def test_release_returns_stock(self, ledger, p2):
        with transaction.atomic():
            ledger.reserve(p2.id, 4)
            ledger.release(p2.id, 4)

        p2.refresh_from_db()
        assert p2.stock_quantity == 5

    def test_release_unknown_product(self, ledger):
        with pytest.raises(ProductNotFound):
            with transaction.atomic():
                ledger.release(uuid4(), 1)
