"""Customer DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateCustomerDTO``: input for customer creation.
- ``UpdateCustomerDTO``: input for partial customer updates.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


def _normalise_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Name must have at least 2 characters.")
    if len(v) > 100:
        raise ValueError("Name must have at most 100 characters.")
    return v


class CreateCustomerDTO(BaseModel):
    """Immutable DTO for customer creation requests.

    Validates:
    - ``name`` has between 2 and 100 characters.
    - ``email`` is a well-formed address (normalised to lowercase).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    email: EmailStr
    phone: str = ""
    address: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _normalise_name(v)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v: str) -> str:
        return v.lower()


class UpdateCustomerDTO(BaseModel):
    """Immutable DTO for customer update requests.

    All fields are optional; only supplied fields will be updated.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str | None) -> str | None:
        return _normalise_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v
