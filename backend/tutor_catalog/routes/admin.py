"""Operational endpoints for cache, analytics, refresh and jobs."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..db.models import EntityType
from ..db.session import get_session_dependency
from ..exam_api import get_exam_api_client
from ..jobs import process_cache_rebuild, process_content_refresh
from ..normalization import normalize_search_query
from ..schemas import (
    CacheRebuildResult,
    CacheStats,
    FreshnessStatus,
    QueryCount,
    RateLimitStatus,
    RefreshJobResult,
    RefreshOutcome,
    RefreshStats,
    SearchHistoryEntry,
    SearchStats,
    SlowQuery,
)
from ..services import analytics, cache, refresh

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/cache/stats", response_model=CacheStats)
def cache_stats() -> CacheStats:
    return cache.cache_stats()


@router.post("/cache/cleanup")
def cleanup_cache() -> Dict[str, int]:
    return {"removed": cache.cleanup_expired_cache()}


@router.delete("/cache")
def invalidate_cache(
    entity_type: EntityType = Query(...),
    query: Optional[str] = Query(default=None, max_length=500),
    session: Session = Depends(get_session_dependency),
) -> Dict[str, int]:
    if query is None:
        removed = cache.invalidate_entity_type(session, entity_type)
    else:
        # University searches are cached under their normalized query; other keys are ids.
        key = normalize_search_query(query) if entity_type is EntityType.UNIVERSITY else query.strip()
        if not key:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query cannot be blank.")
        removed = cache.invalidate_cache(session, key, entity_type)
    logger.info("Admin cache invalidation for %s query=%r removed %d rows", entity_type.value, query, removed)
    return {"removed": removed}


@router.get("/analytics/search", response_model=SearchStats)
def search_stats(days: int = Query(default=30, ge=1, le=365)) -> SearchStats:
    return analytics.search_stats(days)


@router.get("/analytics/popular", response_model=List[QueryCount])
def popular_searches(
    entity_type: Optional[EntityType] = Query(default=None),
    days: int = Query(default=7, ge=1, le=365),
    limit: int = Query(default=20, ge=1, le=100),
) -> List[QueryCount]:
    return analytics.popular_searches(entity_type, days=days, limit=limit)


@router.get("/analytics/slow-queries", response_model=List[SlowQuery])
def slow_queries(
    threshold_ms: Optional[int] = Query(default=None, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
) -> List[SlowQuery]:
    return analytics.slow_queries(threshold_ms, limit=limit)


@router.get("/analytics/history/{user_id}", response_model=List[SearchHistoryEntry])
def search_history(user_id: str, limit: int = Query(default=50, ge=1, le=500)) -> List[SearchHistoryEntry]:
    return analytics.user_search_history(user_id, limit=limit)


@router.get("/refresh/stats", response_model=RefreshStats)
def refresh_stats() -> RefreshStats:
    return refresh.refresh_stats()


@router.get("/refresh/{entity_type}/{entity_id}", response_model=FreshnessStatus)
def freshness(entity_type: EntityType, entity_id: str) -> FreshnessStatus:
    return refresh.check_freshness(entity_type, entity_id)


@router.post("/refresh/{entity_type}/{entity_id}", response_model=RefreshOutcome)
def refresh_one(entity_type: EntityType, entity_id: str) -> RefreshOutcome:
    return refresh.refresh_entity(entity_type, entity_id)


@router.post("/jobs/refresh", response_model=RefreshJobResult)
def run_content_refresh(
    entity_type: Optional[EntityType] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
) -> RefreshJobResult:
    return process_content_refresh(entity_type, limit)


@router.post("/jobs/cache-rebuild", response_model=CacheRebuildResult)
def run_cache_rebuild() -> CacheRebuildResult:
    return process_cache_rebuild()


@router.get("/exam-api/rate-limit", response_model=RateLimitStatus)
def exam_api_rate_limit() -> RateLimitStatus:
    return get_exam_api_client().rate_limit_status()
