"""Order domain exceptions.

Raised by ``OrderService`` when business rules are violated and
rendered by ``modules.core.exception_handler``.  Customer and product
errors raised while validating an order are re-exported here so
callers can catch everything an order operation may raise from a
single module.
"""

from __future__ import annotations

from typing import Any, Dict

from modules.core.exceptions import InsufficientStock, InvalidState, NotFound
from modules.customers.exceptions import CustomerNotFound
from modules.products.exceptions import InactiveProduct, ProductNotFound

__all__ = [
    "CustomerNotFound",
    "InactiveProduct",
    "InsufficientStock",
    "InvalidOrderStatus",
    "OrderFinalized",
    "OrderItemNotFound",
    "OrderNotFound",
    "ProductNotFound",
]


class OrderNotFound(NotFound):
    """The requested order does not exist."""

    code = "order_not_found"


class OrderItemNotFound(NotFound):
    """The item does not exist or does not belong to the order."""

    code = "order_item_not_found"


class OrderFinalized(InvalidState):
    """The order is DELIVERED or CANCELLED and cannot be modified."""

    code = "order_finalized"


class InvalidOrderStatus(InvalidState):
    """An invalid status transition was attempted."""

    code = "invalid_order_status"

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition order from {current} to {requested}."
        )

    def to_meta(self) -> Dict[str, Any]:
        return {"current": self.current, "requested": self.requested}
