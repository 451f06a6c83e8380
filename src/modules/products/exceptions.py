"""Product domain exceptions.

Raised by the Service Layer when business rules are violated and
rendered by ``modules.core.exception_handler``.
"""

from __future__ import annotations

from typing import Any, Dict

from modules.core.exceptions import (
    AlreadyExists,
    InsufficientStock,
    InvalidState,
    NotFound,
)

__all__ = [
    "InactiveProduct",
    "InsufficientStock",
    "ProductAlreadyExists",
    "ProductNotFound",
]


class ProductAlreadyExists(AlreadyExists):
    """A live product with the same name already exists."""

    code = "product_already_exists"


class ProductNotFound(NotFound):
    """The requested product does not exist or has been soft-deleted."""

    code = "product_not_found"

    def __init__(self, product_id: Any) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found.")

    def to_meta(self) -> Dict[str, Any]:
        return {"product_id": str(self.product_id)}


class InactiveProduct(InvalidState):
    """The product is deactivated and cannot be sold."""

    code = "inactive_product"

    def __init__(self, product_id: Any) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} is inactive.")

    def to_meta(self) -> Dict[str, Any]:
        return {"product_id": str(self.product_id)}
