from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rest_framework.response import Response

    from .responses import JSONValue


def _to_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, Mapping):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_json_value(v) for v in value]
    return str(value)


def _message_for(exc: Exception, detail: JSONValue) -> str:
    from rest_framework.exceptions import ValidationError

    if isinstance(exc, ValidationError):
        return "Validation failed"
    if isinstance(detail, dict):
        maybe = detail.get("detail")
        if isinstance(maybe, str):
            return maybe
    return "Request failed"


def custom_exception_handler(
    exc: Exception,
    context: dict[str, Any],
) -> Response:
    # Lazy imports: safe even if settings aren't configured at import time.
    from rest_framework import status
    from rest_framework.response import Response
    from rest_framework.views import exception_handler as drf_exception_handler

    from .responses import envelope

    response = drf_exception_handler(exc, context)

    if response is None:
        return Response(
            envelope(ok=False, message="Internal server error"),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    detail = _to_json_value(response.data)
    response.data = envelope(
        ok=False, message=_message_for(exc, detail), errors=detail
    )
    return response
