from __future__ import annotations

# ruff: noqa: S101
from collections.abc import Iterator
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from django.core.cache import cache

from indices import tasks
from indices.models import Analysis
from indices.pipeline import execute_analysis
from indices.storage import RasterStorage
from indices.tasks import (
    LOCK_MAX_RETRIES,
    acquire_lock,
    refresh_lock,
    release_lock,
    run_analysis,
    shard_lock_key,
)
from lands.models import Land

from .fakes import FakeImageryClient, square_polygon


@pytest.fixture(autouse=True)
def _clear_cache() -> Iterator[None]:
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def analysis(db: None) -> Analysis:
    land = Land.objects.create(name="Plot", geometry=square_polygon())
    return Analysis.objects.create(
        land=land,
        index_type="SAVI",
        date_from=date(2024, 5, 1),
        date_to=date(2024, 5, 2),
    )


@pytest.fixture()
def fake_client(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> FakeImageryClient:
    client = FakeImageryClient()

    def _execute(analysis_id: Any, **kwargs: Any) -> str:
        return execute_analysis(
            analysis_id,
            **kwargs,
            client_factory=lambda: client,
            storage=RasterStorage(root=tmp_path),
        )

    monkeypatch.setattr(tasks, "execute_analysis", _execute)
    return client


@pytest.mark.django_db
def test_run_analysis_completes_and_releases_lock(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    result = run_analysis.apply(args=[str(analysis.id)]).get()

    assert result == Analysis.Status.COMPLETED
    analysis.refresh_from_db()
    assert analysis.status == Analysis.Status.COMPLETED
    assert fake_client.auth_calls == 1
    assert acquire_lock(shard_lock_key(analysis.land_id, "SAVI"), "other")


@pytest.mark.django_db
def test_run_analysis_releases_lock_after_failure(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    fake_client.fail_stats_on.add(analysis.date_from)

    result = run_analysis.apply(args=[str(analysis.id)]).get()

    assert result == Analysis.Status.FAILED
    assert acquire_lock(shard_lock_key(analysis.land_id, "SAVI"), "other")


@pytest.mark.django_db
def test_run_analysis_retries_while_shard_is_busy(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    assert acquire_lock(shard_lock_key(analysis.land_id, "SAVI"), "other")

    with patch.object(
        run_analysis, "retry", side_effect=RuntimeError("retry")
    ) as retry:
        with pytest.raises(RuntimeError, match="retry"):
            run_analysis.apply(args=[str(analysis.id)]).get()

    retry.assert_called_once()
    analysis.refresh_from_db()
    assert analysis.status == Analysis.Status.PENDING
    assert fake_client.stats_calls == []


@pytest.mark.django_db
def test_run_analysis_fails_when_lock_retries_run_out(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    assert acquire_lock(shard_lock_key(analysis.land_id, "SAVI"), "other")

    result = run_analysis.apply(
        args=[str(analysis.id)], retries=LOCK_MAX_RETRIES
    ).get()

    assert result == Analysis.Status.FAILED
    analysis.refresh_from_db()
    assert analysis.status == Analysis.Status.FAILED
    assert analysis.error["type"] == "ShardBusy"
    assert fake_client.stats_calls == []


@pytest.mark.django_db
def test_other_shards_are_not_blocked(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    assert acquire_lock(shard_lock_key(analysis.land_id, "NDVI"), "other")

    result = run_analysis.apply(args=[str(analysis.id)]).get()

    assert result == Analysis.Status.COMPLETED


@pytest.mark.django_db
def test_run_analysis_missing_row() -> None:
    result = run_analysis.apply(
        args=["00000000-0000-0000-0000-000000000000"]
    ).get()
    assert result == "missing"


def test_expired_owner_cannot_release_next_holders_lock() -> None:
    key = shard_lock_key("land-1", "NDVI")
    assert acquire_lock(key, "job-a", timeout=60)
    # Job A's lock lapses and job B takes the shard.
    cache.delete(key)
    assert acquire_lock(key, "job-b")

    assert not release_lock(key, "job-a")
    assert not acquire_lock(key, "job-c")
    assert cache.get(key) == "job-b"

    assert release_lock(key, "job-b")
    assert acquire_lock(key, "job-c")


def test_only_the_owner_refreshes_the_lock() -> None:
    key = shard_lock_key("land-1", "EVI")
    assert not refresh_lock(key, "job-a")

    assert acquire_lock(key, "job-a")
    assert refresh_lock(key, "job-a")
    assert not refresh_lock(key, "job-b")
    assert cache.get(key) == "job-a"


@pytest.mark.django_db
def test_lock_is_held_and_refreshed_while_the_job_runs(
    analysis: Analysis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    key = shard_lock_key(analysis.land_id, "SAVI")
    seen: list[object] = []

    def _execute(analysis_id: Any, **kwargs: Any) -> str:
        kwargs["heartbeat"]()
        seen.append(cache.get(key))
        return Analysis.Status.COMPLETED

    monkeypatch.setattr(tasks, "execute_analysis", _execute)

    run_analysis.apply(args=[str(analysis.id)]).get()

    assert seen == [str(analysis.id)]
    assert cache.get(key) is None


@pytest.mark.django_db
def test_redelivered_job_takes_over_its_own_lock(
    analysis: Analysis, fake_client: FakeImageryClient
) -> None:
    key = shard_lock_key(analysis.land_id, "SAVI")
    assert acquire_lock(key, str(analysis.id))
    analysis.mark_running()

    result = run_analysis.apply(args=[str(analysis.id)]).get()

    assert result == Analysis.Status.COMPLETED
    assert fake_client.auth_calls == 1
    assert cache.get(key) is None
