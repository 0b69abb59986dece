from __future__ import annotations

import logging
from datetime import date
from typing import Any

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import ValidationError

from lands.models import Land

from .models import Analysis, DailyIndexRaster, DailyIndexStat, IndexType
from .tasks import run_analysis

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = int(getattr(settings, "INDICES_MAX_RANGE_DAYS", 366))


def normalize_index_type(index_type: str) -> str:
    value = str(index_type or "").strip().upper()
    if value not in IndexType.values:
        raise ValidationError(
            {"index_type": f"Unsupported index type: {index_type}"}
        )
    return value


def validate_date_range(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise ValidationError(
            {"date_to": "date_to must be on or after date_from."}
        )
    if (date_to - date_from).days + 1 > MAX_RANGE_DAYS:
        raise ValidationError(
            {
                "date_to": (
                    f"Date range may span at most {MAX_RANGE_DAYS} days."
                )
            }
        )


def create_analysis(
    *,
    land: Land,
    index_type: str,
    date_from: date,
    date_to: date,
) -> Analysis:
    """Persist a pending analysis and schedule it in the background.

    Validation happens first: nothing is stored or dispatched for an
    unsupported index type or an invalid range.
    """

    resolved = normalize_index_type(index_type)
    validate_date_range(date_from, date_to)

    with transaction.atomic():
        analysis = Analysis.objects.create(
            land=land,
            index_type=resolved,
            date_from=date_from,
            date_to=date_to,
            status=Analysis.Status.PENDING,
        )
        analysis_id = str(analysis.id)
        transaction.on_commit(lambda: run_analysis.delay(analysis_id))

    logger.info(
        "indices.analysis.created analysis_id=%s land_id=%s index=%s "
        "from=%s to=%s",
        analysis.id,
        land.id,
        resolved,
        date_from,
        date_to,
    )
    return analysis


def daily_values(
    *, land_id: Any, index_type: str, date_from: date, date_to: date
) -> list[dict[str, Any]]:
    rows = DailyIndexStat.objects.filter(
        land_id=land_id,
        index_type=index_type,
        date__gte=date_from,
        date__lte=date_to,
    ).order_by("date")
    return [{"date": row.date, "data": row.data} for row in rows]


def daily_rasters(
    *, land_id: Any, index_type: str, date_from: date, date_to: date
) -> list[dict[str, Any]]:
    rows = DailyIndexRaster.objects.filter(
        land_id=land_id,
        index_type=index_type,
        date__gte=date_from,
        date__lte=date_to,
    ).order_by("date")
    return [
        {
            "date": row.date,
            "png_path": row.png_path,
            "tiff_path": row.tiff_path,
        }
        for row in rows
    ]


def analysis_daily_payload(
    analysis: Analysis, *, include_rasters: bool = False
) -> dict[str, Any]:
    """Daily data for an analysis; only completed analyses carry values."""

    payload: dict[str, Any] = {"daily": None}
    if include_rasters:
        payload["rasters"] = None
    if analysis.status != Analysis.Status.COMPLETED:
        return payload

    scope = {
        "land_id": analysis.land_id,
        "index_type": analysis.index_type,
        "date_from": analysis.date_from,
        "date_to": analysis.date_to,
    }
    payload["daily"] = daily_values(**scope)
    if include_rasters:
        payload["rasters"] = daily_rasters(**scope)
    return payload
