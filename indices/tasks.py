from __future__ import annotations

import logging
from typing import Any

from celery import shared_task
from django.conf import settings
from django.core.cache import caches

from .models import Analysis
from .pipeline import execute_analysis, fail_analysis

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = int(
    getattr(settings, "INDICES_LOCK_TIMEOUT_SECONDS", 900)
)
LOCK_RETRY_SECONDS = int(getattr(settings, "INDICES_LOCK_RETRY_SECONDS", 30))
LOCK_MAX_RETRIES = 20


class ShardBusy(RuntimeError):
    """Another analysis is filling the same (land, index type) caches."""


def shard_lock_key(land_id: object, index_type: str) -> str:
    return f"indices:lock:{land_id}:{index_type}"


def acquire_lock(
    key: str, owner: str, *, timeout: int | None = None
) -> bool:
    cache = caches["default"]
    return bool(cache.add(key, owner, timeout or LOCK_TIMEOUT_SECONDS))


def refresh_lock(
    key: str, owner: str, *, timeout: int | None = None
) -> bool:
    """Push the expiry out while ``owner`` still holds the lock."""

    cache = caches["default"]
    if cache.get(key) != owner:
        return False
    return bool(cache.touch(key, timeout or LOCK_TIMEOUT_SECONDS))


def release_lock(key: str, owner: str) -> bool:
    """Delete the lock only if ``owner`` still holds it."""

    cache = caches["default"]
    if cache.get(key) != owner:
        logger.warning("indices.task.lock_lost key=%s owner=%s", key, owner)
        return False
    cache.delete(key)
    return True


@shared_task(bind=True, max_retries=LOCK_MAX_RETRIES)
def run_analysis(self: Any, analysis_id: str) -> str:
    """Run one analysis, one job per (land, index type) shard at a time."""

    analysis = (
        Analysis.objects.filter(id=analysis_id)
        .values("land_id", "index_type")
        .first()
    )
    if analysis is None:
        logger.warning("indices.task.missing analysis_id=%s", analysis_id)
        return "missing"

    key = shard_lock_key(analysis["land_id"], analysis["index_type"])
    # A lock already held under this id belongs to an earlier delivery of
    # the same job whose worker died.
    held = acquire_lock(key, analysis_id) or refresh_lock(key, analysis_id)
    if not held:
        if self.request.retries >= self.max_retries:
            logger.warning(
                "indices.task.lock_exhausted analysis_id=%s", analysis_id
            )
            fail_analysis(
                analysis_id,
                ShardBusy(
                    "Another analysis kept the same land and index busy"
                ),
            )
            return Analysis.Status.FAILED
        logger.info(
            "indices.task.lock_busy analysis_id=%s retry=%s",
            analysis_id,
            self.request.retries,
        )
        raise self.retry(countdown=LOCK_RETRY_SECONDS)

    try:
        return execute_analysis(
            analysis_id, heartbeat=lambda: refresh_lock(key, analysis_id)
        )
    finally:
        release_lock(key, analysis_id)
