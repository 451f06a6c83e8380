"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on order mutations uses ``select_for_update()``
(``get_for_update``); stock is handled by the product repository.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce

from modules.orders.constants import TOTAL_MAX_DIGITS
from modules.orders.exceptions import OrderNotFound
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``customer_id`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``quantity``, ``unit_price``
        - ``status`` (optional, model default otherwise)
        - ``notes`` (optional)
        """
        order = Order(customer_id=data["customer_id"], notes=data.get("notes", ""))
        if data.get("status"):
            order.status = data["status"]
        order.save()

        items = data.get("items", [])
        for item_data in items:
            self.add_item(order.id, item_data)
        self.recalculate_total(order.id)
        order.refresh_from_db(fields=["total_amount", "updated_at"])

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer FK (single JOIN) and
        ``prefetch_related`` for items and items→product (batched
        queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("customer")
                .prefetch_related("items__product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items (with product) so the caller can iterate
        over them while the row is locked.  Must be called inside
        ``transaction.atomic``.  Returns ``None`` for non-existent or
        invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items__product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters and eager-loaded relations.

        Examples of valid filters::

            {"status": "PENDING"}
            {"customer_id": customer.id}
        """
        queryset = Order.objects.select_related("customer").prefetch_related(
            "items__product"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Save / Update / Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist (create or update) an order."""
        entity.save(update_fields=update_fields)
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    @transaction.atomic
    def update(self, id: str, data: Dict[str, Any]) -> Order:
        """Update order fields using ``select_for_update`` for safety.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self.get_for_update(id)
        if not order:
            raise OrderNotFound(f"Order {id} not found.")

        for field, value in data.items():
            if value is not None:
                setattr(order, field, value)

        order.save()
        logger.info("order.fields_updated", order_id=str(id), fields=sorted(data))
        return order

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order; its items are removed by CASCADE."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.removed", order_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, order_id: str, data: Dict[str, Any]) -> OrderItem:
        item = OrderItem(
            order_id=order_id,
            product_id=data["product_id"],
            quantity=data["quantity"],
            unit_price=data["unit_price"],
        )
        item.save()
        return item

    @transaction.atomic
    def remove_item(self, order_id: str, item_id: str) -> Optional[OrderItem]:
        try:
            item = OrderItem.objects.filter(order_id=order_id, id=item_id).first()
        except (ValueError, ValidationError):
            return None
        if item is None:
            return None
        removed_id = item.id
        item.delete()
        item.id = removed_id
        return item

    @transaction.atomic
    def recalculate_total(self, order_id: str) -> Decimal:
        """``UPDATE orders SET total_amount = SUM(items.subtotal)``."""
        total = OrderItem.objects.filter(order_id=order_id).aggregate(
            total=Coalesce(
                Sum("subtotal"),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=TOTAL_MAX_DIGITS, decimal_places=2),
            )
        )["total"]
        order = Order.objects.get(id=order_id)
        order.total_amount = total
        order.save(update_fields=["total_amount"])
        return total

