"""Order Assembler: prices a cart from the catalog.

Pure computation over a single point-in-time catalog read; nothing is
written.  Client-supplied prices are never consulted.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List
from uuid import UUID

from modules.orders.constants import MAX_LINE_QUANTITY, MAX_ORDER_AMOUNT
from modules.orders.exceptions import (
    InactiveProduct,
    InvalidQuantity,
    OrderTotalTooLarge,
    ProductNotFound,
)
from modules.products.ledger import lock_order
from modules.products.models import ProductStatus

if TYPE_CHECKING:
    from modules.orders.dtos import CartLineDTO
    from modules.products.repositories.interfaces import IProductRepository


@dataclass(frozen=True)
class PricedLine:
    product_id: UUID
    quantity: int
    price_at_time: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price_at_time * self.quantity


@dataclass(frozen=True)
class PricedCart:
    lines: List[PricedLine]

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0.00"))


class OrderAssembler:
    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def assemble(self, lines: Iterable[CartLineDTO]) -> PricedCart:
        """Build authoritative order lines for ``lines``.

        Repeated product ids are merged into one line.  The result is
        sorted by product id, the same order the Inventory Ledger locks in.

        Raises:
            InvalidQuantity: a line asks for zero or fewer units, or more than
                ``MAX_LINE_QUANTITY``.
            OrderTotalTooLarge: the cart is worth more than ``MAX_ORDER_AMOUNT``.
            ProductNotFound: a product does not exist or was deleted.
            InactiveProduct: a product exists but is not for sale.
        """
        quantities: "OrderedDict[UUID, int]" = OrderedDict()
        for line in lines:
            if line.quantity <= 0:
                raise InvalidQuantity(line.product_id, line.quantity)
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
        for product_id, quantity in quantities.items():
            if quantity > MAX_LINE_QUANTITY:
                raise InvalidQuantity(product_id, quantity)

        products = self._product_repo.get_many(quantities.keys())

        priced: List[PricedLine] = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.status != ProductStatus.ACTIVE:
                raise InactiveProduct(product_id)
            priced.append(
                PricedLine(
                    product_id=product_id,
                    quantity=quantity,
                    price_at_time=product.price,
                )
            )

        cart = PricedCart(lines=lock_order(priced))
        if cart.subtotal > MAX_ORDER_AMOUNT:
            raise OrderTotalTooLarge(cart.subtotal)
        return cart
