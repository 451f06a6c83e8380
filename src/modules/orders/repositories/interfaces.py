"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: creation together with its items, row locking, item
insertion/removal and total recomputation.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes its OrderItem children.  Mutations must
    be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_id`` and ``items`` (list of dicts
        with ``product_id``, ``quantity``, ``unit_price``), and optionally
        ``status`` and ``notes``.  ``total_amount`` is derived from the
        items.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def update(self, id: str, data: Dict[str, Any]) -> Order:
        """Update order fields (status, notes, customer_id)."""

    @abstractmethod
    def add_item(self, order_id: str, data: Dict[str, Any]) -> OrderItem:
        """Insert a line item (``product_id``, ``quantity``, ``unit_price``)."""

    @abstractmethod
    def remove_item(self, order_id: str, item_id: str) -> Optional[OrderItem]:
        """Delete a line item belonging to ``order_id``.

        Returns the removed item, or ``None`` if no such item exists
        on that order.
        """

    @abstractmethod
    def recalculate_total(self, order_id: str) -> Decimal:
        """Re-derive ``total_amount`` from the current items and persist it."""
