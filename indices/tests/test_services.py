from __future__ import annotations

# ruff: noqa: S101
from datetime import date
from typing import Any
from unittest.mock import MagicMock

import pytest
from rest_framework.exceptions import ValidationError

from indices.models import Analysis, DailyIndexStat
from indices.services import (
    analysis_daily_payload,
    create_analysis,
    normalize_index_type,
    validate_date_range,
)
from lands.models import Land

from .fakes import square_polygon


@pytest.fixture()
def land(db: None) -> Land:
    return Land.objects.create(name="Service plot", geometry=square_polygon())


@pytest.fixture()
def delay(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr("indices.services.run_analysis.delay", mock)
    return mock


def test_normalize_index_type() -> None:
    assert normalize_index_type(" savi ") == "SAVI"
    with pytest.raises(ValidationError):
        normalize_index_type("")
    with pytest.raises(ValidationError):
        normalize_index_type("NDMI")


def test_validate_date_range_allows_single_day() -> None:
    validate_date_range(date(2024, 1, 1), date(2024, 1, 1))
    with pytest.raises(ValidationError):
        validate_date_range(date(2024, 1, 2), date(2024, 1, 1))


@pytest.mark.django_db
def test_create_analysis_dispatches_on_commit(
    land: Land,
    delay: MagicMock,
    django_capture_on_commit_callbacks: Any,
) -> None:
    with django_capture_on_commit_callbacks(execute=True):
        analysis = create_analysis(
            land=land,
            index_type="ndwi",
            date_from=date(2024, 1, 1),
            date_to=date(2024, 1, 10),
        )

    assert analysis.status == Analysis.Status.PENDING
    assert analysis.index_type == "NDWI"
    delay.assert_called_once_with(str(analysis.id))


@pytest.mark.django_db
def test_create_analysis_rejects_before_persisting(
    land: Land,
    delay: MagicMock,
    django_capture_on_commit_callbacks: Any,
) -> None:
    with django_capture_on_commit_callbacks(execute=True):
        with pytest.raises(ValidationError):
            create_analysis(
                land=land,
                index_type="GNDVI",
                date_from=date(2024, 1, 1),
                date_to=date(2024, 1, 2),
            )

    assert not Analysis.objects.exists()
    delay.assert_not_called()


@pytest.mark.django_db
def test_daily_payload_only_for_completed(land: Land) -> None:
    analysis = Analysis.objects.create(
        land=land,
        index_type="NDVI",
        date_from=date(2024, 1, 1),
        date_to=date(2024, 1, 1),
    )
    DailyIndexStat.objects.create(
        land=land, index_type="NDVI", date=date(2024, 1, 1), data=None
    )

    assert analysis_daily_payload(analysis) == {"daily": None}

    analysis.mark_running()
    analysis.mark_completed({})
    payload = analysis_daily_payload(analysis, include_rasters=True)
    assert payload == {
        "daily": [{"date": date(2024, 1, 1), "data": None}],
        "rasters": [],
    }
