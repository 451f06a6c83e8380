"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Look-ups return ``None`` instead of raising; the Service Layer decides
how to translate a missing entity into a domain error.  ``update_stock``
is the exception: it is called from inside order transactions and
raises domain errors directly so the surrounding atomic block rolls back.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.products.exceptions import (
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a live product by primary key.

        Returns ``None`` for non-existent, soft-deleted or invalid IDs.
        """
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List live products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"name__icontains": "widget"}
        """
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(
        self, entity: Product, update_fields: Optional[List[str]] = None
    ) -> Product:
        """Persist (create or update) a product.

        Updates of existing products name their ``update_fields``; a full
        ``save()`` would write back whatever ``stock_quantity`` the instance
        was loaded with.
        """
        entity.save(update_fields=update_fields)
        if update_fields is not None and "stock_quantity" not in update_fields:
            entity.refresh_from_db(fields=["stock_quantity"])
        logger.info("product.saved", product_id=str(entity.id), name=entity.name)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID.

        Returns ``True`` if the product was found and soft-deleted,
        ``False`` if no product exists with the given ID.
        """
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True

    def get_by_name(self, name: str) -> Optional[Product]:
        return Product.objects.alive().filter(name=name.strip()).first()

    @transaction.atomic
    def update_stock(
        self, id: str, delta: int, *, require_active: bool = False
    ) -> Product:
        """Apply ``delta`` with a single conditional ``UPDATE``.

        ``UPDATE products SET stock_quantity = stock_quantity + delta
        WHERE id = %s AND stock_quantity >= -delta [AND is_active]``

        Reservations (negative ``delta``) only reach live products.
        Releases also reach soft-deleted or inactive ones so an order
        holding them can still be removed.
        """
        queryset = Product.objects.filter(pk=id)
        if delta < 0:
            queryset = queryset.alive().filter(stock_quantity__gte=-delta)
            if require_active:
                queryset = queryset.filter(is_active=True)

        try:
            updated = queryset.update(
                stock_quantity=F("stock_quantity") + delta,
                updated_at=timezone.now(),
            )
            product = Product.objects.filter(pk=id).first()
        except (ValueError, ValidationError):
            raise ProductNotFound(id)
        if product is None or (delta < 0 and product.is_deleted):
            raise ProductNotFound(id)
        if not updated and delta < 0 and require_active and not product.is_active:
            logger.warning("product.stock_rejected_inactive", product_id=str(id))
            raise InactiveProduct(id)
        if not updated:
            logger.warning(
                "product.stock_rejected",
                product_id=str(id),
                available=product.stock_quantity,
                requested=-delta,
            )
            raise InsufficientStock(id, product.stock_quantity, -delta)

        logger.info(
            "product.stock_updated",
            product_id=str(id),
            delta=delta,
            stock_quantity=product.stock_quantity,
        )
        return product
