from __future__ import annotations

import uuid
from typing import Any

from django.db import models
from django.utils import timezone

from lands.models import Land


class IndexType(models.TextChoices):
    NDVI = "NDVI", "Normalized difference vegetation index"
    EVI = "EVI", "Enhanced vegetation index"
    SAVI = "SAVI", "Soil-adjusted vegetation index"
    NDWI = "NDWI", "Normalized difference water index"


class InvalidTransition(RuntimeError):
    """Raised when an analysis is moved out of a terminal or wrong state."""


class Analysis(models.Model):
    """One requested index computation over a land and a day range."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RUNNING = "running", "Running"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.FAILED})
    ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
        Status.PENDING: frozenset({Status.RUNNING, Status.FAILED}),
        Status.RUNNING: frozenset({Status.COMPLETED, Status.FAILED}),
        Status.COMPLETED: frozenset(),
        Status.FAILED: frozenset(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    land = models.ForeignKey(
        Land, on_delete=models.CASCADE, related_name="analyses"
    )
    index_type = models.CharField(max_length=8, choices=IndexType.choices)
    date_from = models.DateField()
    date_to = models.DateField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    result = models.JSONField(null=True, blank=True)
    error = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["land", "created_at"],
                name="indices_analysis_land_idx",
            ),
            models.Index(
                fields=["status"], name="indices_analysis_status_idx"
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Analysis {self.id} {self.index_type} land={self.land_id} "
            f"{self.date_from}..{self.date_to} status={self.status}"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def _transition(self, target: str, **fields: Any) -> None:
        if target not in self.ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Analysis {self.id} cannot move from {self.status} "
                f"to {target}"
            )
        self.status = target
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=["status", *fields])

    def mark_running(self) -> None:
        self._transition(self.Status.RUNNING, started_at=timezone.now())

    def mark_resumed(self) -> None:
        """Restamp a job picked up again while still ``running``."""

        if self.status != self.Status.RUNNING:
            raise InvalidTransition(
                f"Analysis {self.id} cannot resume from {self.status}"
            )
        self.started_at = timezone.now()
        self.save(update_fields=["started_at"])

    def mark_completed(self, result: dict[str, Any] | None = None) -> None:
        self._transition(
            self.Status.COMPLETED,
            result=result,
            finished_at=timezone.now(),
        )

    def mark_failed(self, error: dict[str, Any]) -> None:
        self._transition(
            self.Status.FAILED,
            error=error,
            finished_at=timezone.now(),
        )


class DailyIndexStat(models.Model):
    """Provider statistics for one land, index and UTC day.

    A row with ``data`` null is a no-data day that has already been
    attempted; a missing row means the day was never fetched.
    """

    land = models.ForeignKey(
        Land, on_delete=models.CASCADE, related_name="daily_stats"
    )
    index_type = models.CharField(max_length=8, choices=IndexType.choices)
    date = models.DateField()
    data = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["land", "index_type", "date"],
                name="uniq_daily_index_stat_land_index_date",
            ),
        ]
        ordering = ["date"]

    def __str__(self) -> str:
        return f"{self.index_type} {self.date} land={self.land_id}"


class DailyIndexRaster(models.Model):
    """Public paths of the stored rasters for one land, index and UTC day.

    Both paths are null when the provider had no usable scene that day.
    """

    land = models.ForeignKey(
        Land, on_delete=models.CASCADE, related_name="daily_rasters"
    )
    index_type = models.CharField(max_length=8, choices=IndexType.choices)
    date = models.DateField()
    png_path = models.CharField(max_length=512, null=True, blank=True)
    tiff_path = models.CharField(max_length=512, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["land", "index_type", "date"],
                name="uniq_daily_index_raster_land_index_date",
            ),
        ]
        ordering = ["date"]

    def __str__(self) -> str:
        return f"{self.index_type} raster {self.date} land={self.land_id}"

    @property
    def has_data(self) -> bool:
        return self.png_path is not None
