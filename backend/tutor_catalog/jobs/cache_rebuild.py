"""Expired-entry cleanup and prewarming of popular searches."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import get_settings
from ..db.models import EntityType
from ..exam_api import ExamAPIClient
from ..schemas import CacheRebuildResult
from ..services import analytics, catalog
from ..services.cache import cleanup_expired_cache

logger = logging.getLogger(__name__)

JOB_NAME = "cache-rebuild"
PREWARM_WINDOW_DAYS = 30


def process_cache_rebuild(*, client: Optional[ExamAPIClient] = None) -> CacheRebuildResult:
    result = CacheRebuildResult()

    try:
        result.expired_cleaned = cleanup_expired_cache()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to clean up expired cache entries")
        result.errors += 1

    try:
        top_queries = analytics.popular_searches(
            EntityType.UNIVERSITY,
            days=PREWARM_WINDOW_DAYS,
            limit=get_settings().prewarm_top_queries,
        )
    except Exception:  # noqa: BLE001
        logger.exception("Failed to load popular searches for prewarming")
        result.errors += 1
        top_queries = []

    for entry in top_queries:
        try:
            catalog.search_universities(entry.query, client=client, log=False)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to prewarm query %r", entry.query)
            result.errors += 1
        else:
            result.prewarmed += 1

    logger.info(
        "Cache rebuild job completed: expired_cleaned=%d prewarmed=%d errors=%d",
        result.expired_cleaned,
        result.prewarmed,
        result.errors,
    )
    return result


__all__ = ["JOB_NAME", "process_cache_rebuild"]
