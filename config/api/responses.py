"""Response envelope shared by every JSON endpoint.

Success: ``{"status": 0, "message": str, "data": ..., "errors": None}``.
Failure: ``{"status": 1, "message": str, "data": None, "errors": ...}``.
"""

from __future__ import annotations

from typing import Any, Final, TypeAlias

from rest_framework import status
from rest_framework.response import Response

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

STATUS_OK: Final[int] = 0
STATUS_ERROR: Final[int] = 1


def envelope(
    *,
    ok: bool,
    message: str,
    data: Any = None,
    errors: JSONValue | None = None,
) -> dict[str, Any]:
    return {
        "status": STATUS_OK if ok else STATUS_ERROR,
        "message": message,
        "data": data if ok else None,
        "errors": None if ok else errors,
    }


def success_response(
    data: Any,
    message: str = "OK",
    *,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    # `data` may hold dates and UUIDs; the DRF renderer encodes them.
    return Response(
        envelope(ok=True, message=message, data=data), status=status_code
    )
