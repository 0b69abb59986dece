"""Analysis execution: stats then rasters, one job at a time.

``execute_analysis`` is the only place that catches exceptions from the
caching engine. Everything below it raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from .caches import RasterCache, StatsCache
from .client import ImageryClient, SentinelHubClient
from .exceptions import serialize_error
from .metrics import analysis_jobs_total
from .models import Analysis
from .storage import RasterStorage
from .store import DjangoIndexStore, IndexStore
from .strategies import IndexStrategy, get_strategy

logger = logging.getLogger(__name__)


@dataclass
class AnalysisPipeline:
    """Stats and raster fill for one (land, index type) pair."""

    strategy: IndexStrategy
    client: ImageryClient
    store: IndexStore
    storage: RasterStorage
    heartbeat: Callable[[], None] | None = None

    def run(
        self,
        land_id: UUID,
        geometry: dict[str, Any],
        start: date,
        end: date,
    ) -> dict[str, Any]:
        stats = StatsCache(self.store, self.client, self.strategy).fill(
            land_id, geometry, start, end, heartbeat=self.heartbeat
        )
        rasters = RasterCache(
            self.store, self.client, self.strategy, self.storage
        ).fill(land_id, geometry, start, end, heartbeat=self.heartbeat)
        return {"stats": stats.as_dict(), "rasters": rasters.as_dict()}


def execute_analysis(
    analysis_id: UUID | str,
    *,
    client_factory: Callable[[], ImageryClient] = SentinelHubClient,
    store: IndexStore | None = None,
    storage: RasterStorage | None = None,
    heartbeat: Callable[[], None] | None = None,
) -> str:
    """Run one analysis to a terminal state and return that state.

    Failures are recorded on the analysis rather than raised; rows cached
    before the failure stay in place for the next attempt.
    """

    try:
        analysis = Analysis.objects.select_related("land").get(id=analysis_id)
    except Analysis.DoesNotExist:
        logger.warning("indices.job.missing analysis_id=%s", analysis_id)
        return "missing"

    if analysis.is_terminal:
        logger.info(
            "indices.job.already_finished analysis_id=%s status=%s",
            analysis.id,
            analysis.status,
        )
        return analysis.status

    try:
        if analysis.status == Analysis.Status.RUNNING:
            # Redelivered after a worker died mid-job; caches pick up
            # where the previous attempt stopped.
            analysis.mark_resumed()
            event = "resumed"
        else:
            analysis.mark_running()
            event = "running"
        logger.info(
            "indices.job.%s analysis_id=%s land_id=%s index=%s "
            "from=%s to=%s",
            event,
            analysis.id,
            analysis.land_id,
            analysis.index_type,
            analysis.date_from,
            analysis.date_to,
        )

        client = client_factory()
        client.authenticate()
        pipeline = AnalysisPipeline(
            strategy=get_strategy(analysis.index_type),
            client=client,
            store=store or DjangoIndexStore(),
            storage=storage or RasterStorage(),
            heartbeat=heartbeat,
        )
        result = pipeline.run(
            analysis.land_id,
            analysis.land.geometry,
            analysis.date_from,
            analysis.date_to,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception(
            "indices.job.failed analysis_id=%s err=%s", analysis.id, exc
        )
        analysis.mark_failed(serialize_error(exc))
        analysis_jobs_total.labels(
            status=Analysis.Status.FAILED, index_type=analysis.index_type
        ).inc()
        return analysis.status

    analysis.mark_completed(result)
    analysis_jobs_total.labels(
        status=Analysis.Status.COMPLETED, index_type=analysis.index_type
    ).inc()
    logger.info("indices.job.completed analysis_id=%s", analysis.id)
    return analysis.status


def fail_analysis(analysis_id: UUID | str, exc: BaseException) -> None:
    """Mark a not-yet-finished analysis failed from outside the pipeline."""

    analysis = Analysis.objects.filter(id=analysis_id).first()
    if analysis is None or analysis.is_terminal:
        return
    analysis.mark_failed(serialize_error(exc))
    analysis_jobs_total.labels(
        status=Analysis.Status.FAILED, index_type=analysis.index_type
    ).inc()
