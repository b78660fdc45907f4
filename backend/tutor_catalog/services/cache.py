"""Two-level search cache: process-local L1 in front of the ``search_cache`` table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from sqlalchemy.orm import Session

from ..cache import SearchResultCache, search_result_cache
from ..config import get_settings
from ..db.base import as_utc
from ..db.models import EntityType
from ..db.session import session_scope
from ..repositories import search_cache
from ..schemas import CacheStats

logger = logging.getLogger(__name__)


@dataclass
class CachedSearch:
    result_ids: List[str] = field(default_factory=list)
    source: Literal["l1", "l2"] = "l2"


def _l1() -> Optional[SearchResultCache]:
    settings = get_settings()
    if not settings.l1_cache_enabled:
        return None
    search_result_cache.ttl_seconds = settings.l1_cache_ttl_seconds
    return search_result_cache


def get_cached_search(session: Session, query: str, entity_type: EntityType) -> Optional[CachedSearch]:
    """Return cached ids for ``query`` or ``None`` on a miss.

    L1 is consulted first. A fresh L2 row counts a hit and is copied into L1
    for no longer than the row itself stays fresh.
    """
    l1 = _l1()
    if l1 is not None:
        cached_ids = l1.get(entity_type, query)
        if cached_ids is not None:
            return CachedSearch(result_ids=cached_ids, source="l1")

    entry = search_cache.find_fresh(session, query, entity_type)
    if entry is None:
        return None
    search_cache.increment_hit(session, entry.id)
    result_ids = list(entry.result_ids or [])
    if l1 is not None:
        l1.set(entity_type, query, result_ids, expires_at=as_utc(entry.expires_at))
    return CachedSearch(result_ids=result_ids, source="l2")


def set_cached_search(
    session: Session,
    query: str,
    entity_type: EntityType,
    result_ids: Sequence[str],
    cache_hours: Optional[int] = None,
) -> None:
    hours = cache_hours if cache_hours is not None else get_settings().cache_expiry_hours
    entry = search_cache.upsert(session, query, entity_type, result_ids, cache_hours=hours)
    l1 = _l1()
    if l1 is not None:
        l1.set(entity_type, query, result_ids, expires_at=as_utc(entry.expires_at))


def invalidate_cache(session: Session, query: str, entity_type: EntityType) -> int:
    search_result_cache.invalidate(entity_type, query)
    removed = search_cache.delete(session, query, entity_type)
    logger.debug("Invalidated cache for %s %r (%d rows)", entity_type.value, query, removed)
    return removed


def invalidate_entity_type(session: Session, entity_type: EntityType) -> int:
    search_result_cache.invalidate_entity_type(entity_type)
    removed = search_cache.clear_by_entity_type(session, entity_type)
    logger.info("Cleared %d cached %s searches", removed, entity_type.value)
    return removed


def cleanup_expired_cache() -> int:
    search_result_cache.purge_expired()
    with session_scope() as session:
        removed = search_cache.delete_expired(session)
    logger.info("Removed %d expired search cache rows", removed)
    return removed


def cache_stats() -> CacheStats:
    l1 = _l1()
    with session_scope(commit=False) as session:
        table_stats = search_cache.stats(session)
    return CacheStats(
        l1_available=l1 is not None,
        l1_entries=len(l1) if l1 is not None else 0,
        l2_stats=table_stats,
    )


__all__ = [
    "CachedSearch",
    "cache_stats",
    "cleanup_expired_cache",
    "get_cached_search",
    "invalidate_cache",
    "invalidate_entity_type",
    "set_cached_search",
]
