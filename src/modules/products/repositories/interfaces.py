"""Product repository interface.

Extends ``IRepository[Product]`` with the name look-up used by the
unique-name rule and the atomic stock update used by order operations.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Product]:
        """Retrieve a live product by exact name."""

    @abstractmethod
    def update_stock(
        self, id: str, delta: int, *, require_active: bool = False
    ) -> Product:
        """Apply a signed ``delta`` to the product's stock atomically.

        The update is conditional: a negative ``delta`` is only applied
        when the current stock covers it, so concurrent writers can never
        drive the quantity below zero.

        With ``require_active`` a reservation is also conditional on the
        product being active at the moment of the write.

        Raises:
            ProductNotFound: if the product does not exist.
            InactiveProduct: if ``require_active`` is set and the product
                is inactive.
            InsufficientStock: if the resulting stock would be negative.
        """
