"""Read models over the search log."""

from __future__ import annotations

from typing import List, Optional

from ..config import get_settings
from ..db.base import as_utc
from ..db.models import EntityType
from ..db.session import session_scope
from ..repositories import search_logs
from ..schemas import QueryCount, SearchHistoryEntry, SearchStats, SlowQuery

TOP_QUERY_LIMIT = 10


def search_stats(days: int = 30) -> SearchStats:
    with session_scope(commit=False) as session:
        summary = search_logs.analytics(session, days=days)
        top = search_logs.popular_searches(session, days=days, limit=TOP_QUERY_LIMIT)
    return summary.model_copy(
        update={"top_queries": [QueryCount(query=query, count=count) for query, count in top]}
    )


def popular_searches(
    entity_type: Optional[EntityType] = None, days: int = 7, limit: int = 20
) -> List[QueryCount]:
    with session_scope(commit=False) as session:
        rows = search_logs.popular_searches(session, entity_type=entity_type, days=days, limit=limit)
    return [QueryCount(query=query, count=count) for query, count in rows]


def user_search_history(user_id: str, limit: int = 50) -> List[SearchHistoryEntry]:
    with session_scope(commit=False) as session:
        page = search_logs.find_by_user(session, user_id, page=1, limit=limit)
        return [
            SearchHistoryEntry(
                query=entry.raw_query,
                entity_type=entry.entity_type.value,
                result_count=entry.result_count,
                cache_hit=entry.cache_hit,
                searched_at=as_utc(entry.created_at),
            )
            for entry in page.data
        ]


def slow_queries(threshold_ms: Optional[int] = None, limit: int = 50) -> List[SlowQuery]:
    threshold = threshold_ms if threshold_ms is not None else get_settings().slow_query_threshold_ms
    with session_scope(commit=False) as session:
        return [
            SlowQuery(
                query=entry.raw_query,
                entity_type=entry.entity_type.value,
                latency_ms=entry.latency_ms,
                cache_hit=entry.cache_hit,
                occurred_at=as_utc(entry.created_at),
            )
            for entry in search_logs.slow_queries(session, threshold_ms=threshold, limit=limit)
        ]


__all__ = ["popular_searches", "search_stats", "slow_queries", "user_search_history"]
