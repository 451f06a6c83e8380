"""Product DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.products.models import Product


class ProductInputSerializer(serializers.Serializer):
    """Validates create (all required) and update (``partial=True``) payloads."""

    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0")
    )
    stock_quantity = serializers.IntegerField(required=False, min_value=0)
    category = serializers.CharField(required=False, allow_blank=True, max_length=50)
    is_active = serializers.BooleanField(required=False)


class StockAdjustmentSerializer(serializers.Serializer):
    """``{"quantity": n}`` where ``n`` is a signed, non-zero delta."""

    quantity = serializers.IntegerField()


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock_quantity",
            "category",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
