from __future__ import annotations

import random
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.discounts.constants import DiscountKind
from modules.discounts.models import Discount
from modules.discounts.repositories.django_repository import DiscountDjangoRepository
from modules.orders.dtos import CartLineDTO, PlaceOrderDTO
from modules.orders.exceptions import InsufficientStock, InvalidDiscountCode
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=20,
            help="Number of orders to place through checkout.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        products = self._seed_products()
        discounts = self._seed_discounts()
        orders_created = self._seed_orders(products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"discounts={len(discounts)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        for username in ("alice", "bob"):
            if not User.objects.filter(username=username).exists():
                User.objects.create_user(username, password=f"{username}123")
                created += 1
        return created

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("MUG-001", "Ceramic Mug", Decimal("10.00"), 10),
            ("TEE-001", "Logo T-Shirt", Decimal("25.00"), 5),
            ("CAP-001", "Baseball Cap", Decimal("100.00"), 2),
            ("BAG-001", "Canvas Tote", Decimal("18.50"), 40),
            ("BTL-001", "Steel Bottle", Decimal("29.90"), 25),
            ("NTB-001", "Dot Grid Notebook", Decimal("12.00"), 60),
            ("PEN-001", "Gel Pen Set", Decimal("7.99"), 120),
            ("STK-001", "Sticker Pack", Decimal("4.50"), 200),
            ("HOD-001", "Zip Hoodie", Decimal("59.00"), 15),
            ("PST-001", "Poster", Decimal("15.00"), 0),
        ]
        for sku, name, price, stock in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "price": price,
                    "stock_quantity": stock,
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_discounts(self) -> list[Discount]:
        self.stdout.write("Creating discounts...")
        seed_discounts = [
            {
                "code": "SAVE10",
                "kind": DiscountKind.PERCENTAGE,
                "percentage": Decimal("10.00"),
                "description": "10% off any order.",
            },
            {
                "code": "FIVEOFF",
                "kind": DiscountKind.FIXED,
                "fixed_amount": Decimal("5.00"),
                "min_order_amount": Decimal("30.00"),
                "description": "$5 off orders of $30 or more.",
            },
            {
                "code": "WELCOME",
                "kind": DiscountKind.PERCENTAGE,
                "percentage": Decimal("15.00"),
                "single_use_per_user": True,
                "description": "15% off a first order.",
            },
            {
                "code": "FLASH50",
                "kind": DiscountKind.PERCENTAGE,
                "percentage": Decimal("50.00"),
                "max_uses": 3,
                "description": "Half price for the first three shoppers.",
            },
            {
                "code": "EXPIRED2020",
                "kind": DiscountKind.PERCENTAGE,
                "percentage": Decimal("20.00"),
                "expires_at": datetime(2020, 12, 31, tzinfo=dt_timezone.utc),
                "description": "Expired promotion.",
            },
        ]
        discounts: list[Discount] = []
        for data in seed_discounts:
            code = data.pop("code")
            discount, _ = Discount.objects.get_or_create(code=code, defaults=data)
            discounts.append(discount)
        self.stdout.write(self.style.SUCCESS("Creating discounts... Done!"))
        return discounts

    def _seed_orders(self, products: list[Product], count: int) -> int:
        self.stdout.write("Creating orders...")
        User = get_user_model()
        shoppers = list(User.objects.filter(is_staff=False))
        if not shoppers or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no users/products)."))
            return 0

        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            discount_repository=DiscountDjangoRepository(),
        )
        codes = [None, None, "SAVE10", "FIVEOFF", "WELCOME"]

        orders_created = 0
        for i in range(count):
            shopper = random.choice(shoppers)
            picked = random.sample(products, k=random.randint(1, 3))
            dto = PlaceOrderDTO(
                user_id=shopper.pk,
                items=[
                    CartLineDTO(product_id=p.id, quantity=random.randint(1, 2))
                    for p in picked
                ],
                shipping_address=f"{100 + i} Market Street, Springfield",
                discount_code=random.choice(codes),
                idempotency_key=f"seed-{i}",
            )
            try:
                service.place_order(dto)
            except (InsufficientStock, InvalidDiscountCode) as exc:
                self.stdout.write(f"  order {i + 1} skipped: {exc}")
                continue
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
