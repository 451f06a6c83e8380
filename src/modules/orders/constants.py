"""Order domain constants.

Defines status choices and valid status transitions for the order
state machine.
"""

from decimal import Decimal

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    APPROVED = "APPROVED", "Approved"
    CANCELLED = "CANCELLED", "Cancelled"
    DELIVERED = "DELIVERED", "Delivered"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.CANCELLED},
    OrderStatus.APPROVED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Finalized orders reject edits; DELIVERED also rejects deletion.
TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Per-line quantity cap. With unit prices below 10**8 a subtotal stays
# under 10**12, well inside SUBTOTAL_MAX_DIGITS.
MAX_ITEM_QUANTITY = 10_000
MAX_UNIT_PRICE = Decimal("99999999.99")

SUBTOTAL_MAX_DIGITS = 16
TOTAL_MAX_DIGITS = 18
