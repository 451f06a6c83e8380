from __future__ import annotations

import random
from decimal import Decimal

from django.core.management.base import BaseCommand

from modules.core.exceptions import DomainError
from modules.customers.dtos import CreateCustomerDTO
from modules.customers.models import Customer
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.customers.services import CustomerService
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.services import build_order_service
from modules.products.dtos import CreateProductDTO
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=30,
            help="Number of orders to create (default: 30).",
        )
        parser.add_argument("--seed", type=int, default=42)

    def handle(self, *args, **options):
        random.seed(options["seed"])
        self.stdout.write("Seeding development data...")

        customers = self._seed_customers()
        products = self._seed_products()
        orders_created = self._seed_orders(customers, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"customers={len(customers)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        repository = CustomerDjangoRepository()
        service = CustomerService(repository=repository)
        seed_customers = [
            ("Ana Souza", "ana@example.com", "+55 11 91234-5678"),
            ("Bruno Lima", "bruno@example.com", "+55 21 99876-5432"),
            ("Carla Mendes", "carla@example.com", ""),
            ("Daniel Costa", "daniel@example.com", "+55 31 98888-1111"),
            ("Eduardo Alves", "eduardo@example.com", ""),
            ("Fernanda Rocha", "fernanda@example.com", "+55 41 97777-2222"),
            ("Gabriel Santos", "gabriel@example.com", ""),
            ("Helena Ferreira", "helena@example.com", "+55 51 96666-3333"),
        ]
        customers: list[Customer] = []
        for name, email, phone in seed_customers:
            customer = repository.get_by_email(email)
            if customer is None:
                customer = service.create_customer(
                    CreateCustomerDTO(name=name, email=email, phone=phone)
                )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        repository = ProductDjangoRepository()
        service = ProductService(repository=repository)
        catalog = [
            ('Monitor 27"', "Electronics", Decimal("1299.90")),
            ("Mechanical Keyboard", "Electronics", Decimal("399.90")),
            ("Gaming Mouse", "Electronics", Decimal("249.90")),
            ('Notebook 14"', "Electronics", Decimal("3999.00")),
            ("Headset", "Electronics", Decimal("299.90")),
            ("Office Desk", "Furniture", Decimal("899.00")),
            ("Ergonomic Chair", "Furniture", Decimal("1499.00")),
            ("Bookshelf", "Furniture", Decimal("699.00")),
            ("A4 Paper", "Office", Decimal("29.90")),
            ("Blue Pen", "Office", Decimal("4.90")),
            ("Notebook Stand", "Office", Decimal("149.90")),
            ("Calculator", "Office", Decimal("89.90")),
        ]
        products: list[Product] = []
        for name, category, price in catalog:
            product = repository.get_by_name(name)
            if product is None:
                product = service.create_product(
                    CreateProductDTO(
                        name=name,
                        category=category,
                        price=price,
                        stock_quantity=random.randint(10, 200),
                    )
                )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self, customers: list[Customer], products: list[Product], count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        if not customers or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        service = build_order_service()
        status_weights = [
            (OrderStatus.PENDING, 0.40),
            (OrderStatus.APPROVED, 0.30),
            (OrderStatus.DELIVERED, 0.20),
            (OrderStatus.CANCELLED, 0.10),
        ]
        statuses = [s for s, _ in status_weights]
        weights = [w for _, w in status_weights]

        orders_created = 0
        for i in range(count):
            picked = random.sample(products, k=random.randint(1, min(4, len(products))))
            dto = CreateOrderDTO(
                customer_id=random.choice(customers).id,
                notes=f"Seed order {i + 1}",
                items=[
                    CreateOrderItemDTO(product_id=p.id, quantity=random.randint(1, 3))
                    for p in picked
                ],
            )
            try:
                order = service.create_order(dto)
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped order {i + 1}: {exc}"))
                continue

            target = random.choices(statuses, weights=weights, k=1)[0]
            if target in (OrderStatus.APPROVED, OrderStatus.DELIVERED):
                service.update_status(order.id, OrderStatus.APPROVED)
            if target in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
                service.update_status(order.id, target)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
