"""Unit tests for OrderService.

Covers:
- Order creation: stock reservation, derived total, price snapshot,
  summed duplicate lines, unit price override.
- Failed creations (missing customer, missing/inactive product,
  insufficient stock) mutate nothing.
- A stock update rejected after a stale pre-check (stock drained or
  product deactivated) rolls the whole creation back.
- Adding/removing items keeps stock and total consistent.
- Finalized orders reject edits; delivered orders reject deletion.
- Deletion restores stock.
- Repository wiring through mocks (constructor injection).
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, UpdateOrderDTO
from modules.orders.exceptions import (
    CustomerNotFound,
    InactiveProduct,
    InsufficientStock,
    InvalidOrderStatus,
    OrderFinalized,
    OrderItemNotFound,
    OrderNotFound,
    ProductNotFound,
)
from modules.orders.models import Order, OrderItem
from modules.orders.services import OrderService, build_order_service
from modules.products.models import Product

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return build_order_service()


def _create(service, customer, *lines, **kwargs):
    return service.create_order(
        CreateOrderDTO(
            customer_id=customer.id,
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            **kwargs,
        )
    )


def _stock(product) -> int:
    return Product.objects.get(pk=product.pk).stock_quantity


class TestCreateOrder:
    def test_reserves_stock_and_derives_total(self, service, customer, product):
        order = _create(service, customer, (product, 3))

        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("300.00")
        assert _stock(product) == 7
        item = order.items.get()
        assert item.unit_price == Decimal("100.00")
        assert item.subtotal == Decimal("300.00")

    def test_exact_stock_is_allowed(self, service, customer, product):
        _create(service, customer, (product, 10))
        assert _stock(product) == 0

    def test_multiple_products(self, service, customer, product, make_product):
        other = make_product(name="Gadget", price="12.50", stock=4)
        order = _create(service, customer, (product, 1), (other, 2))

        assert order.total_amount == Decimal("125.00")
        assert _stock(product) == 9
        assert _stock(other) == 2

    def test_duplicate_lines_are_summed_for_stock(self, service, customer, product):
        order = _create(service, customer, (product, 4), (product, 5))
        assert order.items.count() == 2
        assert _stock(product) == 1

    def test_duplicate_lines_exceeding_stock(self, service, customer, product):
        with pytest.raises(InsufficientStock) as exc_info:
            _create(service, customer, (product, 6), (product, 5))
        assert exc_info.value.available == 10
        assert exc_info.value.requested == 11
        assert _stock(product) == 10
        assert Order.objects.count() == 0

    def test_unit_price_override(self, service, customer, product):
        order = service.create_order(
            CreateOrderDTO(
                customer_id=customer.id,
                items=[
                    CreateOrderItemDTO(
                        product_id=product.id, quantity=2, unit_price=Decimal("80.00")
                    )
                ],
            )
        )
        assert order.total_amount == Decimal("160.00")

    def test_price_snapshot_survives_price_change(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        Product.objects.filter(pk=product.pk).update(price=Decimal("999.00"))

        item = service.get_order(order.id).items.get()
        assert item.unit_price == Decimal("100.00")

    def test_explicit_status(self, service, customer, product):
        order = _create(service, customer, (product, 1), status="approved")
        assert order.status == OrderStatus.APPROVED

    def test_notes(self, service, customer, product):
        order = _create(service, customer, (product, 1), notes="leave at door")
        assert order.notes == "leave at door"


class TestCreateOrderFailures:
    def test_insufficient_stock(self, service, customer, product):
        with pytest.raises(InsufficientStock) as exc_info:
            _create(service, customer, (product, 11))

        exc = exc_info.value
        assert exc.product_id == product.id
        assert (exc.available, exc.requested) == (10, 11)
        assert _stock(product) == 10
        assert Order.objects.count() == 0

    def test_missing_customer(self, service, product):
        ghost = MagicMock(id=uuid.uuid4())
        with pytest.raises(CustomerNotFound):
            _create(service, ghost, (product, 1))
        assert _stock(product) == 10

    def test_soft_deleted_customer(self, service, customer, product):
        customer.delete()
        with pytest.raises(CustomerNotFound):
            _create(service, customer, (product, 1))

    def test_missing_product_mutates_nothing(self, service, customer, product):
        ghost = MagicMock(id=uuid.uuid4())
        with pytest.raises(ProductNotFound):
            _create(service, customer, (product, 2), (ghost, 1))
        assert _stock(product) == 10
        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0

    def test_soft_deleted_product(self, service, customer, product):
        product.delete()
        with pytest.raises(ProductNotFound):
            _create(service, customer, (product, 1))

    def test_inactive_product_mutates_nothing(self, service, customer, product, make_product):
        inactive = make_product(name="Retired", is_active=False)
        with pytest.raises(InactiveProduct):
            _create(service, customer, (product, 2), (inactive, 1))
        assert _stock(product) == 10
        assert _stock(inactive) == 10
        assert Order.objects.count() == 0

    def test_stale_check_rolls_back(self, service, customer, product, make_product):
        """Stock taken after validation makes the conditional update fail."""
        scarce = make_product(name="Scarce", stock=1)
        real_validate = service._validate_products

        def validate_then_drain(requested):
            products = real_validate(requested)
            Product.objects.filter(pk=scarce.pk).update(stock_quantity=0)
            return products

        with patch.object(service, "_validate_products", side_effect=validate_then_drain):
            with pytest.raises(InsufficientStock) as exc_info:
                _create(service, customer, (product, 3), (scarce, 1))

        assert exc_info.value.available == 0
        # The drain ran inside the rolled-back transaction too.
        assert _stock(product) == 10
        assert _stock(scarce) == 1
        assert Order.objects.count() == 0

    def test_deactivated_after_check_is_not_sold(self, service, customer, product):
        """A product retired between validation and the stock write is refused."""
        real_validate = service._validate_products

        def validate_then_retire(requested):
            products = real_validate(requested)
            Product.objects.filter(pk=product.pk).update(is_active=False)
            return products

        with patch.object(service, "_validate_products", side_effect=validate_then_retire):
            with pytest.raises(InactiveProduct):
                _create(service, customer, (product, 3))

        assert _stock(product) == 10
        assert Order.objects.count() == 0

    def test_add_item_deactivated_after_check(self, service, customer, product, make_product):
        other = make_product(name="Gadget", price="5.00", stock=20)
        order = _create(service, customer, (product, 1))
        real_validate = service._validate_products

        def validate_then_retire(requested):
            products = real_validate(requested)
            Product.objects.filter(pk=other.pk).update(is_active=False)
            return products

        with patch.object(service, "_validate_products", side_effect=validate_then_retire):
            with pytest.raises(InactiveProduct):
                service.add_item(order.id, CreateOrderItemDTO(product_id=other.id, quantity=4))

        assert _stock(other) == 20
        order.refresh_from_db()
        assert order.items.count() == 1
        assert order.total_amount == Decimal("100.00")


class TestItems:
    def test_total_beyond_single_line_width(self, service, customer, make_product):
        premium = make_product(name="Premium", price="99999999.99", stock=20_000)
        order = _create(service, customer, (premium, 10_000))
        service.add_item(order.id, CreateOrderItemDTO(product_id=premium.id, quantity=10_000))

        order = Order.objects.get(pk=order.pk)
        assert order.total_amount == Decimal("1999999999800.00")
        assert sorted(item.subtotal for item in order.items.all()) == [
            Decimal("999999999900.00"),
            Decimal("999999999900.00"),
        ]
        assert _stock(premium) == 0

    def test_add_then_remove_restores_state(self, service, customer, product, make_product):
        other = make_product(name="Gadget", price="5.00", stock=20)
        order = _create(service, customer, (product, 3))

        item = service.add_item(order.id, CreateOrderItemDTO(product_id=other.id, quantity=4))
        order.refresh_from_db()
        assert order.total_amount == Decimal("320.00")
        assert _stock(other) == 16

        removed = service.remove_item(order.id, item.id)
        assert removed.id == item.id
        order.refresh_from_db()
        assert order.total_amount == Decimal("300.00")
        assert _stock(other) == 20

    def test_remove_last_item_leaves_zero_total(self, service, customer, product):
        order = _create(service, customer, (product, 3))
        service.remove_item(order.id, order.items.get().id)

        order.refresh_from_db()
        assert order.total_amount == Decimal("0.00")
        assert _stock(product) == 10

    def test_add_item_insufficient_stock(self, service, customer, product):
        order = _create(service, customer, (product, 8))
        with pytest.raises(InsufficientStock) as exc_info:
            service.add_item(order.id, CreateOrderItemDTO(product_id=product.id, quantity=3))
        assert (exc_info.value.available, exc_info.value.requested) == (2, 3)
        assert order.items.count() == 1
        assert _stock(product) == 2

    def test_add_item_inactive_product(self, service, customer, product, make_product):
        order = _create(service, customer, (product, 1))
        inactive = make_product(name="Retired", is_active=False)
        with pytest.raises(InactiveProduct):
            service.add_item(order.id, CreateOrderItemDTO(product_id=inactive.id, quantity=1))

    def test_add_item_missing_order(self, service, product):
        with pytest.raises(OrderNotFound):
            service.add_item(uuid.uuid4(), CreateOrderItemDTO(product_id=product.id, quantity=1))

    def test_remove_unknown_item(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        with pytest.raises(OrderItemNotFound):
            service.remove_item(order.id, uuid.uuid4())
        assert _stock(product) == 9

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_finalized_order_rejects_item_changes(self, service, customer, product, status):
        order = _create(service, customer, (product, 2))
        Order.objects.filter(pk=order.pk).update(status=status)

        with pytest.raises(OrderFinalized):
            service.add_item(order.id, CreateOrderItemDTO(product_id=product.id, quantity=1))
        with pytest.raises(OrderFinalized):
            service.remove_item(order.id, order.items.get().id)
        assert _stock(product) == 8


class TestUpdateOrder:
    def test_updates_notes_and_customer(self, service, customer, product):
        from modules.customers.models import Customer

        other = Customer.objects.create(name="Bruno Lima", email="bruno@example.com")
        order = _create(service, customer, (product, 1))

        updated = service.update_order(
            order.id, UpdateOrderDTO(notes="gift", customer_id=other.id)
        )
        assert updated.notes == "gift"
        assert updated.customer_id == other.id

    def test_unknown_customer(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        with pytest.raises(CustomerNotFound):
            service.update_order(order.id, UpdateOrderDTO(customer_id=uuid.uuid4()))

    def test_status_transition(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        updated = service.update_order(order.id, UpdateOrderDTO(status="APPROVED"))
        assert updated.status == OrderStatus.APPROVED

    def test_same_status_is_noop(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        updated = service.update_order(order.id, UpdateOrderDTO(status="PENDING"))
        assert updated.status == OrderStatus.PENDING

    def test_invalid_transition(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        with pytest.raises(InvalidOrderStatus):
            service.update_order(order.id, UpdateOrderDTO(status="DELIVERED"))

    def test_finalized_order(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        service.update_status(order.id, OrderStatus.CANCELLED)
        with pytest.raises(OrderFinalized):
            service.update_order(order.id, UpdateOrderDTO(notes="late"))

    def test_does_not_touch_stock(self, service, customer, product):
        order = _create(service, customer, (product, 4))
        service.update_order(order.id, UpdateOrderDTO(status="APPROVED", notes="x"))
        assert _stock(product) == 6


class TestDeleteOrder:
    @pytest.mark.parametrize(
        "status", [OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.CANCELLED]
    )
    def test_restores_stock(self, service, customer, product, status):
        order = _create(service, customer, (product, 3), (product, 2))
        Order.objects.filter(pk=order.pk).update(status=status)

        service.delete_order(order.id)

        assert _stock(product) == 10
        assert not Order.objects.filter(pk=order.pk).exists()
        assert OrderItem.objects.count() == 0

    def test_delivered_rejected(self, service, customer, product):
        order = _create(service, customer, (product, 3))
        service.update_status(order.id, OrderStatus.APPROVED)
        service.update_status(order.id, OrderStatus.DELIVERED)

        with pytest.raises(OrderFinalized):
            service.delete_order(order.id)
        assert Order.objects.filter(pk=order.pk).exists()
        assert _stock(product) == 7

    def test_missing(self, service):
        with pytest.raises(OrderNotFound):
            service.delete_order(uuid.uuid4())

    def test_restores_stock_of_retired_product(self, service, customer, product):
        order = _create(service, customer, (product, 3))
        Product.objects.filter(pk=product.pk).update(is_active=False)

        service.delete_order(order.id)
        assert _stock(product) == 10

    def test_restores_stock_of_soft_deleted_product(self, service, customer, product):
        order = _create(service, customer, (product, 3))
        product.delete()

        service.delete_order(order.id)
        assert _stock(product) == 10


class TestQueries:
    def test_get_order_missing(self, service):
        with pytest.raises(OrderNotFound):
            service.get_order(uuid.uuid4())

    def test_get_order_invalid_id(self, service):
        with pytest.raises(OrderNotFound):
            service.get_order("not-a-uuid")

    def test_list_customer_orders(self, service, customer, product):
        from modules.customers.models import Customer

        other = Customer.objects.create(name="Bruno Lima", email="bruno@example.com")
        mine = _create(service, customer, (product, 1))
        _create(service, other, (product, 1))

        assert service.list_customer_orders(customer.id) == [mine]

    def test_list_customer_orders_missing(self, service):
        with pytest.raises(CustomerNotFound):
            service.list_customer_orders(uuid.uuid4())

    def test_list_orders_filters(self, service, customer, product):
        order = _create(service, customer, (product, 1))
        assert service.list_orders({"status": OrderStatus.PENDING}) == [order]
        assert service.list_orders({"status": OrderStatus.CANCELLED}) == []


class TestWithMockRepositories:
    @pytest.fixture()
    def repos(self):
        return MagicMock(), MagicMock(), MagicMock()

    @pytest.fixture()
    def mocked_service(self, repos):
        order_repo, customer_repo, product_repo = repos
        return OrderService(
            order_repository=order_repo,
            customer_repository=customer_repo,
            product_repository=product_repo,
        )

    def test_create_calls_update_stock_with_negative_delta(self, mocked_service, repos):
        order_repo, customer_repo, product_repo = repos
        product_id = uuid.uuid4()
        product_repo.get_by_id.return_value = MagicMock(
            is_active=True, stock_quantity=5, price=Decimal("2.00")
        )

        mocked_service.create_order(
            CreateOrderDTO(
                customer_id=uuid.uuid4(),
                items=[CreateOrderItemDTO(product_id=product_id, quantity=2)],
            )
        )

        product_repo.update_stock.assert_called_once_with(
            str(product_id), -2, require_active=True
        )
        payload = order_repo.create.call_args.args[0]
        assert payload["items"][0]["unit_price"] == Decimal("2.00")
        assert payload["status"] == OrderStatus.PENDING

    def test_missing_customer_skips_repositories(self, mocked_service, repos):
        order_repo, customer_repo, product_repo = repos
        customer_repo.get_by_id.return_value = None

        with pytest.raises(CustomerNotFound):
            mocked_service.create_order(
                CreateOrderDTO(
                    customer_id=uuid.uuid4(),
                    items=[CreateOrderItemDTO(product_id=uuid.uuid4(), quantity=1)],
                )
            )
        product_repo.update_stock.assert_not_called()
        order_repo.create.assert_not_called()

    def test_remove_item_releases_stock(self, mocked_service, repos):
        order_repo, _, product_repo = repos
        order_repo.get_for_update.return_value = MagicMock(is_finalized=False)
        product_id = uuid.uuid4()
        order_repo.remove_item.return_value = MagicMock(product_id=product_id, quantity=3)

        mocked_service.remove_item(uuid.uuid4(), uuid.uuid4())

        product_repo.update_stock.assert_called_once_with(str(product_id), 3)
        order_repo.recalculate_total.assert_called_once()
