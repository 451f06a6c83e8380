"""Domain exception taxonomy shared by every module.

Module-level exceptions (``modules.<name>.exceptions``) subclass one of
the kinds below.  Services raise them; the DRF exception handler in
``modules.core.exception_handler`` turns them into HTTP responses using
``status_code`` and ``code``.

- ``NotFound``: a referenced entity does not exist (404).
- ``InvalidState``: the entity is in a state that forbids the operation (409).
- ``AlreadyExists``: a uniqueness rule would be violated (409).
- ``InsufficientStock``: requested quantity exceeds available stock (409).
"""

from __future__ import annotations

from typing import Any, Dict


class DomainError(Exception):
    """Base class for business-rule violations."""

    status_code = 400
    code = "domain_error"

    def to_meta(self) -> Dict[str, Any]:
        """Extra context rendered next to the error message."""
        return {}


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class InvalidState(DomainError):
    status_code = 409
    code = "invalid_state"


class AlreadyExists(DomainError):
    status_code = 409
    code = "already_exists"


class InsufficientStock(DomainError):
    """Not enough stock to satisfy the requested quantity."""

    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_id: Any, available: int, requested: int) -> None:
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"available {available}, requested {requested}."
        )

    def to_meta(self) -> Dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "available": self.available,
            "requested": self.requested,
        }
