"""OpenAPI schemas for the response envelope in `config.api.responses`.

Views pass these to `extend_schema(responses=...)` so the documented bodies
match what `success_response` and the exception handler actually return.
"""

from __future__ import annotations

from drf_spectacular.utils import inline_serializer
from rest_framework import serializers
from rest_framework.serializers import Serializer


def _envelope(name: str, data: serializers.Field) -> Serializer:
    return inline_serializer(
        name=name,
        fields={
            "status": serializers.IntegerField(),
            "message": serializers.CharField(),
            "data": data,
            "errors": serializers.JSONField(allow_null=True),
        },
    )


def success_envelope_serializer(
    name: str,
    *,
    data: serializers.Field,
) -> Serializer:
    return _envelope(name, data)


def error_envelope_serializer(name: str) -> Serializer:
    """Error bodies: `data` is always null, details live in `errors`."""

    return _envelope(name, serializers.JSONField(allow_null=True))
