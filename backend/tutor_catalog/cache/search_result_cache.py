"""Process-local TTL cache for search result id lists."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Dict, List, Optional, Sequence

from ..db.models import EntityType


def cache_key(entity_type: EntityType, normalized_query: str) -> str:
    normalized = normalized_query.strip()
    if not normalized:
        raise ValueError("Query cannot be empty when caching search results.")
    return f"search:{EntityType(entity_type).value}:{normalized}"


@dataclass
class _SearchEntry:
    result_ids: List[str]
    expires_at: datetime


class SearchResultCache:
    """Short-lived copies of search results, shared by every request in the process."""

    def __init__(self, ttl_seconds: int = 300) -> None:
        self._entries: Dict[str, _SearchEntry] = {}
        self._lock = RLock()
        self.ttl_seconds = ttl_seconds

    def get(self, entity_type: EntityType, normalized_query: str) -> Optional[List[str]]:
        key = cache_key(entity_type, normalized_query)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= datetime.now(timezone.utc):
                del self._entries[key]
                return None
            return list(entry.result_ids)

    def set(
        self,
        entity_type: EntityType,
        normalized_query: str,
        result_ids: Sequence[str],
        expires_at: Optional[datetime] = None,
    ) -> None:
        """Store ids until the TTL elapses or ``expires_at``, whichever comes first."""
        key = cache_key(entity_type, normalized_query)
        deadline = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        if expires_at is not None and expires_at < deadline:
            deadline = expires_at
        with self._lock:
            self._entries[key] = _SearchEntry(result_ids=list(result_ids), expires_at=deadline)

    def invalidate(self, entity_type: EntityType, normalized_query: str) -> None:
        key = cache_key(entity_type, normalized_query)
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_entity_type(self, entity_type: EntityType) -> int:
        prefix = f"search:{EntityType(entity_type).value}:"
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def purge_expired(self) -> int:
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


search_result_cache = SearchResultCache()

__all__ = ["SearchResultCache", "cache_key", "search_result_cache"]
