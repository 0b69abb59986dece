"""Incremental day caches for index statistics and rasters.

Both caches follow the same rule: a row for (land, index type, day) means the
day was attempted, whatever its payload, and is never fetched again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from collections.abc import Callable
from datetime import date
from typing import Any, Final
from uuid import UUID

from django.conf import settings

from .client import ImageryClient
from .days import enumerate_days
from .metrics import cache_day_hits_total, raster_no_data_days_total
from .reconcile import DayRange, reconcile
from .storage import RasterStorage
from .store import IndexStore
from .strategies import IndexStrategy, RasterFormat

logger = logging.getLogger(__name__)

EMPTY_RASTER_BYTES: Final[int] = int(
    getattr(settings, "INDICES_EMPTY_RASTER_BYTES", 1200)
)


def is_empty_raster(
    content: bytes | None, threshold: int | None = None
) -> bool:
    """True when a visual render is too small to hold a usable scene."""

    limit = EMPTY_RASTER_BYTES if threshold is None else threshold
    return not content or len(content) < limit


@dataclass
class StatsFillReport:
    cached_days: int = 0
    fetched_ranges: list[DayRange] = field(default_factory=list)
    days_with_data: int = 0
    days_without_data: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "cached_days": self.cached_days,
            "fetched_ranges": [
                {"from": r.start.isoformat(), "to": r.end.isoformat()}
                for r in self.fetched_ranges
            ],
            "days_with_data": self.days_with_data,
            "days_without_data": self.days_without_data,
        }


@dataclass
class RasterFillReport:
    cached_days: int = 0
    recovered_days: int = 0
    stored_days: int = 0
    no_data_days: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "cached_days": self.cached_days,
            "recovered_days": self.recovered_days,
            "stored_days": self.stored_days,
            "no_data_days": self.no_data_days,
        }


class StatsCache:
    """Per-day statistics, fetched one missing range at a time."""

    def __init__(
        self,
        store: IndexStore,
        client: ImageryClient,
        strategy: IndexStrategy,
    ) -> None:
        self.store = store
        self.client = client
        self.strategy = strategy

    @property
    def index_type(self) -> str:
        return self.strategy.index_type.value

    def cached_days(
        self, land_id: UUID, start: date, end: date
    ) -> set[date]:
        return self.store.stat_days(land_id, self.index_type, start, end)

    def missing_ranges(
        self, land_id: UUID, start: date, end: date
    ) -> list[DayRange]:
        return reconcile(start, end, self.cached_days(land_id, start, end))

    def fill(
        self,
        land_id: UUID,
        geometry: dict[str, Any],
        start: date,
        end: date,
        heartbeat: Callable[[], None] | None = None,
    ) -> StatsFillReport:
        cached = self.cached_days(land_id, start, end)
        missing = reconcile(start, end, cached)
        report = StatsFillReport(cached_days=len(cached))
        if cached:
            cache_day_hits_total.labels(
                layer="stats", index_type=self.index_type
            ).inc(len(cached))
        logger.info(
            "indices.stats.reconciled land_id=%s index=%s cached=%s "
            "missing_ranges=%s",
            land_id,
            self.index_type,
            len(cached),
            len(missing),
        )

        for day_range in missing:
            if heartbeat is not None:
                heartbeat()
            logger.info(
                "indices.stats.fetch land_id=%s index=%s from=%s to=%s",
                land_id,
                self.index_type,
                day_range.start,
                day_range.end,
            )
            payload = self.strategy.build_stats_request(
                geometry, day_range.start, day_range.end
            )
            raw = self.client.fetch_statistics(payload)
            values = self.strategy.normalize_stats(
                day_range.start, day_range.end, raw
            )
            self.store.insert_stats(land_id, self.index_type, values)

            with_data = sum(1 for value in values if value.value is not None)
            report.fetched_ranges.append(day_range)
            report.days_with_data += with_data
            report.days_without_data += len(values) - with_data
            logger.info(
                "indices.stats.stored land_id=%s index=%s days=%s "
                "with_data=%s",
                land_id,
                self.index_type,
                len(values),
                with_data,
            )
        return report


class RasterCache:
    """Per-day visual and raw rasters backed by files on disk.

    The visual render doubles as a cheap probe: when it comes back empty the
    day is recorded as no-data and the raw render is never requested.
    """

    def __init__(
        self,
        store: IndexStore,
        client: ImageryClient,
        strategy: IndexStrategy,
        storage: RasterStorage,
        *,
        empty_threshold: int | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.strategy = strategy
        self.storage = storage
        self.empty_threshold = empty_threshold

    @property
    def index_type(self) -> str:
        return self.strategy.index_type.value

    def cached_days(
        self, land_id: UUID, start: date, end: date
    ) -> set[date]:
        return self.store.raster_days(land_id, self.index_type, start, end)

    def missing_ranges(
        self, land_id: UUID, start: date, end: date
    ) -> list[DayRange]:
        return reconcile(start, end, self.cached_days(land_id, start, end))

    def fill(
        self,
        land_id: UUID,
        geometry: dict[str, Any],
        start: date,
        end: date,
        heartbeat: Callable[[], None] | None = None,
    ) -> RasterFillReport:
        cached = self.cached_days(land_id, start, end)
        report = RasterFillReport(cached_days=len(cached))
        if cached:
            cache_day_hits_total.labels(
                layer="raster", index_type=self.index_type
            ).inc(len(cached))

        for day_range in reconcile(start, end, cached):
            for day in enumerate_days(day_range.start, day_range.end):
                if heartbeat is not None:
                    heartbeat()
                self._fill_day(land_id, geometry, day, report)
        return report

    def _fill_day(
        self,
        land_id: UUID,
        geometry: dict[str, Any],
        day: date,
        report: RasterFillReport,
    ) -> None:
        paths = self.storage.paths(land_id, self.index_type, day)
        public = self.storage.public_paths(land_id, self.index_type, day)

        if self.storage.exists(paths):
            # Files written by an earlier run that died before the row.
            self.store.insert_raster(
                land_id, self.index_type, day, public.png, public.tiff
            )
            report.recovered_days += 1
            logger.info(
                "indices.raster.recovered land_id=%s index=%s date=%s",
                land_id,
                self.index_type,
                day,
            )
            return

        visual = self.client.render(
            self.strategy.build_raster_request(
                geometry, day, RasterFormat.VISUAL
            ),
            RasterFormat.VISUAL,
        )
        if is_empty_raster(visual, self.empty_threshold):
            self.store.insert_raster(
                land_id, self.index_type, day, None, None
            )
            report.no_data_days += 1
            raster_no_data_days_total.labels(
                index_type=self.index_type
            ).inc()
            logger.info(
                "indices.raster.no_data land_id=%s index=%s date=%s",
                land_id,
                self.index_type,
                day,
            )
            return

        self.storage.write(paths.png, visual)
        raw = self.client.render(
            self.strategy.build_raster_request(
                geometry, day, RasterFormat.RAW
            ),
            RasterFormat.RAW,
        )
        self.storage.write(paths.tiff, raw)
        self.store.insert_raster(
            land_id, self.index_type, day, public.png, public.tiff
        )
        report.stored_days += 1
        logger.info(
            "indices.raster.stored land_id=%s index=%s date=%s",
            land_id,
            self.index_type,
            day,
        )
