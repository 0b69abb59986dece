"""Persistence handle for the daily stat and raster caches.

The caching engine only talks to an ``IndexStore``; ``DjangoIndexStore`` is
the production implementation and tests substitute an in-memory one.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol
from uuid import UUID

from django.db import transaction

from .models import DailyIndexRaster, DailyIndexStat
from .strategies import DayValue


class IndexStore(Protocol):
    """Presence/value records keyed by (land, index type, day)."""

    def stat_days(
        self, land_id: UUID, index_type: str, start: date, end: date
    ) -> set[date]:
        """Return days in ``[start, end]`` that already have a stat row."""

    def insert_stats(
        self, land_id: UUID, index_type: str, values: Iterable[DayValue]
    ) -> None:
        """Insert stat rows, silently skipping days that already exist."""

    def raster_days(
        self, land_id: UUID, index_type: str, start: date, end: date
    ) -> set[date]:
        """Return days in ``[start, end]`` that already have a raster row."""

    def insert_raster(
        self,
        land_id: UUID,
        index_type: str,
        day: date,
        png_path: str | None,
        tiff_path: str | None,
    ) -> bool:
        """Record a raster row; return False if one was already present."""


class DjangoIndexStore:
    """``IndexStore`` backed by the ORM models."""

    def stat_days(
        self, land_id: UUID, index_type: str, start: date, end: date
    ) -> set[date]:
        return set(
            DailyIndexStat.objects.filter(
                land_id=land_id,
                index_type=index_type,
                date__gte=start,
                date__lte=end,
            ).values_list("date", flat=True)
        )

    def insert_stats(
        self, land_id: UUID, index_type: str, values: Iterable[DayValue]
    ) -> None:
        rows = [
            DailyIndexStat(
                land_id=land_id,
                index_type=index_type,
                date=value.day,
                data=value.value,
            )
            for value in values
        ]
        if not rows:
            return
        with transaction.atomic():
            DailyIndexStat.objects.bulk_create(rows, ignore_conflicts=True)

    def raster_days(
        self, land_id: UUID, index_type: str, start: date, end: date
    ) -> set[date]:
        return set(
            DailyIndexRaster.objects.filter(
                land_id=land_id,
                index_type=index_type,
                date__gte=start,
                date__lte=end,
            ).values_list("date", flat=True)
        )

    def insert_raster(
        self,
        land_id: UUID,
        index_type: str,
        day: date,
        png_path: str | None,
        tiff_path: str | None,
    ) -> bool:
        _, created = DailyIndexRaster.objects.get_or_create(
            land_id=land_id,
            index_type=index_type,
            date=day,
            defaults={"png_path": png_path, "tiff_path": tiff_path},
        )
        return created
