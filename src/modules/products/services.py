"""Product service layer (Use Cases).

Orchestrates business logic for the Product aggregate, delegating
persistence to the injected ``IProductRepository``.

Business rules enforced here:
- Product name must be unique among live products (exact match).
- Price and stock cannot be negative (validated by DTO).
- Manual stock adjustments go through the same conditional update used
  by order operations, so they can never drive stock below zero.
- Soft delete via repository.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.products.exceptions import ProductAlreadyExists, ProductNotFound
from modules.products.models import Product

if TYPE_CHECKING:
    from modules.products.dtos import (
        CreateProductDTO,
        StockAdjustmentDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a new product after enforcing the unique-name rule.

        Raises:
            ProductAlreadyExists: if the name is already taken.
        """
        log = logger.bind(name=dto.name)

        if self._repo.get_by_name(dto.name):
            log.warning("product.duplicate_name")
            raise ProductAlreadyExists(f"Product '{dto.name}' already registered.")

        product = Product(
            name=dto.name,
            price=dto.price,
            description=dto.description,
            stock_quantity=dto.stock_quantity,
            category=dto.category,
            is_active=dto.is_active,
        )
        product = self._repo.save(product)
        log.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Update an existing product with the supplied fields.

        Raises:
            ProductNotFound: if the product does not exist.
            ProductAlreadyExists: if the new name belongs to another product.
            InsufficientStock: if a lower ``stock_quantity`` would overdraw
                units reserved since the product was read.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(id)

        log = logger.bind(product_id=str(id))

        if dto.name is not None and dto.name != product.name:
            existing = self._repo.get_by_name(dto.name)
            if existing and existing.pk != product.pk:
                log.warning("product.duplicate_name", name=dto.name)
                raise ProductAlreadyExists(
                    f"Product '{dto.name}' already registered."
                )

        # Stock moves as a delta from the value read above, so units
        # reserved by orders in the meantime are kept.
        delta = 0
        if dto.stock_quantity is not None:
            delta = dto.stock_quantity - product.stock_quantity

        changed: List[str] = []
        for field in ("name", "price", "description", "category", "is_active"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
                changed.append(field)
        if changed:
            product = self._repo.save(product, update_fields=changed)
        if delta:
            product = self._repo.update_stock(id, delta)

        log.info("product.updated", fields=changed, stock_delta=delta)
        return product

    @transaction.atomic
    def toggle_status(self, id: str) -> Product:
        """Flip ``is_active``.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(id)
        product.is_active = not product.is_active
        product = self._repo.save(product, update_fields=["is_active"])
        logger.info(
            "product.status_toggled",
            product_id=str(id),
            is_active=product.is_active,
        )
        return product

    @transaction.atomic
    def adjust_stock(self, id: str, dto: StockAdjustmentDTO) -> Product:
        """Apply a signed stock delta.

        Raises:
            ProductNotFound: if the product does not exist.
            InsufficientStock: if a withdrawal exceeds the available stock.
        """
        if not self._repo.get_by_id(id):
            raise ProductNotFound(id)
        return self._repo.update_stock(id, dto.quantity)

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        """Soft-delete a product.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        if not self._repo.delete(id):
            raise ProductNotFound(id)
        logger.info("product.deleted", product_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """Return a list of products, optionally filtered."""
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(id)
        return product
