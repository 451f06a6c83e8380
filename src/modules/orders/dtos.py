"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: a single order line (also used by ``add_item``).
- ``CreateOrderDTO``: input for order creation (nested items).
- ``UpdateOrderDTO``: partial order update (status, notes, customer).
- ``UpdateStatusDTO``: status change request.
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import MAX_ITEM_QUANTITY, MAX_UNIT_PRICE, OrderStatus

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


def _validate_status(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().upper()
    if v not in OrderStatus.values:
        raise ValueError(
            f"Invalid status '{v}'. Expected one of: {', '.join(OrderStatus.values)}."
        )
    return v


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order line.

    ``unit_price`` is optional: when omitted the Service Layer snapshots
    the current product price.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int
    unit_price: Optional[Decimal] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        if v > MAX_ITEM_QUANTITY:
            raise ValueError(f"Quantity cannot exceed {MAX_ITEM_QUANTITY}.")
        return v

    @field_validator("unit_price")
    @classmethod
    def unit_price_must_be_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        if v < 0:
            raise ValueError("Unit price cannot be negative.")
        if v > MAX_UNIT_PRICE:
            raise ValueError(f"Unit price cannot exceed {MAX_UNIT_PRICE}.")
        return v


AddOrderItemDTO = CreateOrderItemDTO


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one item.
    - Each item quantity must be positive.
    - ``status`` (optional) must be a known order status.

    The same product may appear on several lines; stock is checked
    against the summed quantity (see ``requested_quantities``).
    """

    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    items: List[CreateOrderItemDTO]
    notes: str = ""
    status: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: Optional[str]) -> Optional[str]:
        return _validate_status(v)

    def requested_quantities(self) -> Dict[UUID, int]:
        """Total quantity requested per product across all lines."""
        totals: Counter = Counter()
        for item in self.items:
            totals[item.product_id] += item.quantity
        return dict(totals)


class UpdateOrderDTO(BaseModel):
    """Immutable DTO for order update requests.

    All fields are optional; only supplied fields will be updated.
    """

    model_config = ConfigDict(frozen=True)

    status: Optional[str] = None
    notes: Optional[str] = None
    customer_id: Optional[UUID] = None

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: Optional[str]) -> Optional[str]:
        return _validate_status(v)


class UpdateStatusDTO(BaseModel):
    """Immutable DTO for status change requests."""

    model_config = ConfigDict(frozen=True)

    status: str

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        return _validate_status(v)
