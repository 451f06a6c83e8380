"""Customer domain exceptions.

Raised by the Service Layer when business rules are violated and
rendered by ``modules.core.exception_handler``.
"""

from __future__ import annotations

from modules.core.exceptions import AlreadyExists, NotFound


class CustomerAlreadyExists(AlreadyExists):
    """A customer with the same email already exists."""

    code = "customer_already_exists"


class CustomerNotFound(NotFound):
    """The requested customer does not exist or has been soft-deleted."""

    code = "customer_not_found"
