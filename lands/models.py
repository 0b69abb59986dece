from __future__ import annotations

import uuid
from typing import Any

from django.db import models

from .geometry import validate_polygon


class Land(models.Model):
    """A user-drawn parcel whose polygon scopes every imagery request."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    # GeoJSON Polygon, WGS84 [lon, lat]
    geometry = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["created_at"], name="lands_land_created_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"

    def clean(self) -> None:
        super().clean()
        validate_polygon(self.geometry)

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.name = self.name.strip()
        super().save(*args, **kwargs)
