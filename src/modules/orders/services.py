"""Order service layer (Use Cases).

Orchestrates the core business logic for order creation, line item
changes, status management and deletion.  All write operations are
atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- Customer must exist (and not be soft-deleted).
- Every product must exist, be active, and have enough stock for the
  summed quantity requested across all lines.
- Stock is changed only through ``IProductRepository.update_stock``
  (conditional delta update), so it never goes negative.
- ``total_amount`` is re-derived from the items after every item change.
- Finalized orders (DELIVERED, CANCELLED) reject edits; DELIVERED orders
  also reject deletion.
- Status transitions are validated against ``VALID_TRANSITIONS``.
- Stock is released exactly once, when the order (or an item) is deleted.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.orders.constants import OrderStatus
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

if TYPE_CHECKING:
    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, UpdateOrderDTO
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a new order and reserve its stock atomically.

        Steps:
        1. Validate the customer exists.
        2. Validate every product (exists, active, enough stock for the
           summed quantity) before any write.
        3. Decrement stock per product, in product-id order.
        4. Persist order + items; the total is derived from the items.

        Raises:
            CustomerNotFound: if the customer does not exist.
            ProductNotFound: if any product does not exist.
            InactiveProduct: if any product is inactive.
            InsufficientStock: if any product has not enough stock.
        """
        log = logger.bind(customer_id=str(dto.customer_id), item_count=len(dto.items))

        self._get_customer_or_raise(dto.customer_id)

        requested = dto.requested_quantities()
        products = self._validate_products(requested)

        for product_id in sorted(requested, key=str):
            self._product_repo.update_stock(
                str(product_id), -requested[product_id], require_active=True
            )
            log.info(
                "order.stock_reserved",
                product_id=str(product_id),
                quantity=requested[product_id],
            )

        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "status": dto.status or OrderStatus.PENDING,
                "notes": dto.notes,
                "items": [self._item_data(item, products) for item in dto.items],
            }
        )
        log.info(
            "order.created",
            order_id=str(order.id),
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def add_item(self, order_id: Any, dto: CreateOrderItemDTO) -> OrderItem:
        """Add a line item to an open order.

        Raises:
            OrderNotFound: if the order does not exist.
            OrderFinalized: if the order is DELIVERED or CANCELLED.
            ProductNotFound / InactiveProduct / InsufficientStock: as for
                ``create_order``.
        """
        order = self._get_open_order_for_update(order_id)
        log = logger.bind(order_id=str(order.id), product_id=str(dto.product_id))

        products = self._validate_products({dto.product_id: dto.quantity})
        self._product_repo.update_stock(
            str(dto.product_id), -dto.quantity, require_active=True
        )

        item = self._order_repo.add_item(str(order.id), self._item_data(dto, products))
        total = self._order_repo.recalculate_total(str(order.id))
        log.info(
            "order.item_added",
            item_id=str(item.id),
            quantity=dto.quantity,
            total_amount=str(total),
        )
        return item

    @transaction.atomic
    def remove_item(self, order_id: Any, item_id: Any) -> OrderItem:
        """Remove a line item from an open order and restore its stock.

        Raises:
            OrderNotFound: if the order does not exist.
            OrderFinalized: if the order is DELIVERED or CANCELLED.
            OrderItemNotFound: if the item does not belong to the order.
        """
        order = self._get_open_order_for_update(order_id)
        log = logger.bind(order_id=str(order.id), item_id=str(item_id))

        item = self._order_repo.remove_item(str(order.id), str(item_id))
        if item is None:
            raise OrderItemNotFound(f"Item {item_id} not found in order {order.id}.")

        self._product_repo.update_stock(str(item.product_id), item.quantity)
        total = self._order_repo.recalculate_total(str(order.id))
        log.info(
            "order.item_removed",
            product_id=str(item.product_id),
            quantity=item.quantity,
            total_amount=str(total),
        )
        return item

    @transaction.atomic
    def update_status(self, order_id: Any, new_status: str) -> Order:
        """Move an order to ``new_status`` following ``VALID_TRANSITIONS``.

        Cancelling does not release stock; stock comes back when the
        order is deleted.

        Raises:
            OrderNotFound: if the order does not exist.
            InvalidOrderStatus: if the transition is not allowed.
        """
        order = self._get_order_for_update(order_id)
        old_status = order.status

        if not order.can_transition_to(new_status):
            logger.warning(
                "order.invalid_transition",
                order_id=str(order.id),
                current=old_status,
                requested=new_status,
            )
            raise InvalidOrderStatus(old_status, new_status)

        order = self._order_repo.update(str(order.id), {"status": new_status})
        logger.info(
            "order.status_changed",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def update_order(self, order_id: Any, dto: UpdateOrderDTO) -> Order:
        """Patch ``status``, ``notes`` and ``customer_id`` of an open order.

        Stock is not re-validated.  A ``status`` equal to the current one
        is a no-op; any other value must be an allowed transition.

        Raises:
            OrderNotFound: if the order does not exist.
            OrderFinalized: if the order is DELIVERED or CANCELLED.
            CustomerNotFound: if the new customer does not exist.
            InvalidOrderStatus: if the status transition is not allowed.
        """
        order = self._get_open_order_for_update(order_id)
        log = logger.bind(order_id=str(order.id))

        changes: Dict[str, Any] = {}
        if dto.customer_id is not None:
            customer = self._get_customer_or_raise(dto.customer_id)
            changes["customer_id"] = customer.id
        if dto.notes is not None:
            changes["notes"] = dto.notes
        if dto.status is not None and dto.status != order.status:
            if not order.can_transition_to(dto.status):
                raise InvalidOrderStatus(order.status, dto.status)
            changes["status"] = dto.status

        if changes:
            self._order_repo.update(str(order.id), changes)
        log.info("order.updated", fields=sorted(changes))
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def delete_order(self, order_id: Any) -> None:
        """Restore stock for every item, then hard-delete the order.

        Raises:
            OrderNotFound: if the order does not exist.
            OrderFinalized: if the order is DELIVERED.
        """
        order = self._get_order_for_update(order_id)
        log = logger.bind(order_id=str(order.id), status=order.status)

        if order.status == OrderStatus.DELIVERED:
            log.warning("order.delete_rejected")
            raise OrderFinalized(f"Order {order.id} is delivered and cannot be deleted.")

        released: Counter = Counter()
        for item in order.items.all():
            released[item.product_id] += item.quantity
        for product_id in sorted(released, key=str):
            self._product_repo.update_stock(str(product_id), released[product_id])
            log.info(
                "order.stock_released",
                product_id=str(product_id),
                quantity=released[product_id],
            )

        self._order_repo.delete(str(order.id))
        log.info("order.deleted")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any) -> Order:
        """Retrieve a single order with its items.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def list_customer_orders(self, customer_id: Any) -> List[Order]:
        """Return every order placed by ``customer_id``.

        Raises:
            CustomerNotFound: if the customer does not exist.
        """
        customer = self._get_customer_or_raise(customer_id)
        return self._order_repo.list({"customer_id": customer.id})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_customer_or_raise(self, customer_id: Any):
        customer = self._customer_repo.get_by_id(str(customer_id))
        if not customer:
            raise CustomerNotFound(f"Customer {customer_id} not found.")
        return customer

    def _get_order_for_update(self, order_id: Any) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _get_open_order_for_update(self, order_id: Any) -> Order:
        order = self._get_order_for_update(order_id)
        if order.is_finalized:
            logger.warning(
                "order.finalized_rejected",
                order_id=str(order.id),
                status=order.status,
            )
            raise OrderFinalized(
                f"Order {order.id} is {order.status}: cannot modify a finalized order."
            )
        return order

    def _validate_products(self, requested: Dict[UUID, int]) -> Dict[UUID, Product]:
        """Check existence, activity and stock before any write."""
        products: Dict[UUID, Product] = {}
        for product_id, quantity in requested.items():
            product = self._product_repo.get_by_id(str(product_id))
            if not product:
                raise ProductNotFound(product_id)
            if not product.is_active:
                raise InactiveProduct(product_id)
            if product.stock_quantity < quantity:
                raise InsufficientStock(product_id, product.stock_quantity, quantity)
            products[product_id] = product
        return products

    @staticmethod
    def _item_data(
        item: CreateOrderItemDTO, products: Dict[UUID, Product]
    ) -> Dict[str, Any]:
        unit_price = item.unit_price
        if unit_price is None:
            unit_price = products[item.product_id].price
        return {
            "product_id": item.product_id,
            "quantity": item.quantity,
            "unit_price": unit_price,
        }


def build_order_service() -> OrderService:
    """Wire ``OrderService`` with the Django ORM repositories."""
    from modules.customers.repositories.django_repository import (
        CustomerDjangoRepository,
    )
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import (
        ProductDjangoRepository,
    )

    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )
