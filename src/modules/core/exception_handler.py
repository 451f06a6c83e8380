"""DRF exception handler producing a single error envelope.

Every error response has the shape::

    {
        "type": "validation_error" | "client_error" | "server_error",
        "errors": [{"code": ..., "detail": ..., "attr": ..., "meta": {...}}],
    }

Domain exceptions (``modules.core.exceptions.DomainError``) are mapped by
their ``status_code`` / ``code``.  DRF exceptions keep their own status.
Anything else is logged with full request context and rendered as a
generic 500; internal messages never reach the client.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.exceptions import DomainError

logger = structlog.get_logger(__name__)


def _error(
    code: str,
    detail: str,
    attr: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"code": code, "detail": detail, "attr": attr}
    if meta:
        entry["meta"] = meta
    return entry


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Flatten DRF's nested ``ErrorDetail`` structures into a list."""
    if isinstance(detail, dict):
        errors = []
        for key, value in detail.items():
            child = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                child = attr
            errors.extend(_flatten(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                errors.extend(_flatten(value, f"{attr}.{index}" if attr else str(index)))
            else:
                errors.extend(_flatten(value, attr))
        return errors
    code = getattr(detail, "code", "error")
    return [_error(code, str(detail), attr)]


def domain_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    if isinstance(exc, DomainError):
        log = logger.bind(code=exc.code, status_code=exc.status_code)
        log.info("api.domain_error", detail=str(exc))
        return Response(
            {
                "type": "client_error",
                "errors": [_error(exc.code, str(exc), meta=exc.to_meta())],
            },
            status=exc.status_code,
        )

    if isinstance(exc, PydanticValidationError):
        errors = [
            _error(
                "invalid",
                err["msg"],
                ".".join(str(part) for part in err["loc"]) or None,
            )
            for err in exc.errors()
        ]
        return Response(
            {"type": "validation_error", "errors": errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        request = context.get("request")
        logger.exception(
            "api.unhandled_error",
            view=view.__class__.__name__ if view else None,
            method=getattr(request, "method", None),
            path=request.get_full_path() if request else None,
        )
        return Response(
            {
                "type": "server_error",
                "errors": [_error("error", "A server error occurred.")],
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = _flatten(exc.detail)
    else:
        error_type = "client_error" if response.status_code < 500 else "server_error"
        errors = _flatten(getattr(exc, "detail", str(exc)))

    response.data = {"type": error_type, "errors": errors}
    return response
