from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .geometry import validate_polygon
from .models import Land


class LandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Land
        fields = [
            "id",
            "name",
            "geometry",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value: str) -> str:
        name = value.strip()
        if not name:
            raise serializers.ValidationError("Name may not be blank.")
        return name

    def validate_geometry(self, value: Any) -> dict[str, Any]:
        # Mirror model.clean() so the API returns neat errors.
        validate_polygon(value)
        return dict(value)
