"""Uniform error envelope for the REST API.

DRF errors are rendered as::

    {"type": "validation_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}

Anything that escapes a view without being an ``APIException`` becomes a
logged 500; the exception text is only exposed when ``DEBUG`` is on.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            nested = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                nested = attr
            errors.extend(_flatten(value, nested))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                nested = str(index) if attr is None else f"{attr}.{index}"
                errors.extend(_flatten(value, nested))
            else:
                errors.extend(_flatten(value, attr))
        return errors
    return [
        {
            "code": getattr(detail, "code", "error"),
            "detail": str(detail),
            "attr": attr,
        }
    ]


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    response = drf_exception_handler(exc, context)
    view = context.get("view")
    view_name = type(view).__name__ if view is not None else None

    if response is None:
        logger.exception("api.unhandled_exception", view=view_name)
        detail = str(exc) if settings.DEBUG else "Internal server error."
        return Response(
            {
                "type": "server_error",
                "errors": [{"code": "error", "detail": detail, "attr": None}],
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
    elif response.status_code >= 500:
        error_type = "server_error"
    else:
        error_type = "client_error"

    response.data = {"type": error_type, "errors": _flatten(exc.detail)}
    return response
