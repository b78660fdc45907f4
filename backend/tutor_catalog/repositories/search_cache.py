"""Repository for the persistent (L2) search cache table."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import EntityType, SearchCacheModel
from ..schemas import CacheTableStats, EntityTypeCount

DEFAULT_CACHE_HOURS = 24


class SearchCacheRepository:
    def find(self, session: Session, normalized_query: str, entity_type: EntityType) -> Optional[SearchCacheModel]:
        stmt = select(SearchCacheModel).where(
            SearchCacheModel.normalized_query == normalized_query,
            SearchCacheModel.entity_type == entity_type,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_fresh(
        self, session: Session, normalized_query: str, entity_type: EntityType
    ) -> Optional[SearchCacheModel]:
        stmt = select(SearchCacheModel).where(
            SearchCacheModel.normalized_query == normalized_query,
            SearchCacheModel.entity_type == entity_type,
            SearchCacheModel.expires_at > utcnow(),
        )
        return session.execute(stmt).scalar_one_or_none()

    def upsert(
        self,
        session: Session,
        normalized_query: str,
        entity_type: EntityType,
        result_ids: Sequence[str],
        cache_hours: int = DEFAULT_CACHE_HOURS,
    ) -> SearchCacheModel:
        """Write the id list and push expiry out; hit counts survive rewrites."""
        expires_at = utcnow() + timedelta(hours=cache_hours)
        ids = list(result_ids)
        entry = self.find(session, normalized_query, entity_type)
        if entry is None:
            entry = SearchCacheModel(
                normalized_query=normalized_query,
                entity_type=entity_type,
                result_ids=ids,
                result_count=len(ids),
                expires_at=expires_at,
                hit_count=0,
            )
            session.add(entry)
        else:
            entry.result_ids = ids
            entry.result_count = len(ids)
            entry.expires_at = expires_at
        session.flush()
        return entry

    def increment_hit(self, session: Session, entry_id: str) -> None:
        stmt = (
            update(SearchCacheModel)
            .where(SearchCacheModel.id == entry_id)
            .values(hit_count=SearchCacheModel.hit_count + 1)
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)

    def delete(self, session: Session, normalized_query: str, entity_type: EntityType) -> int:
        stmt = delete(SearchCacheModel).where(
            SearchCacheModel.normalized_query == normalized_query,
            SearchCacheModel.entity_type == entity_type,
        )
        return int(session.execute(stmt).rowcount or 0)

    def delete_expired(self, session: Session) -> int:
        stmt = delete(SearchCacheModel).where(SearchCacheModel.expires_at <= utcnow())
        return int(session.execute(stmt).rowcount or 0)

    def clear_by_entity_type(self, session: Session, entity_type: EntityType) -> int:
        stmt = delete(SearchCacheModel).where(SearchCacheModel.entity_type == entity_type)
        return int(session.execute(stmt).rowcount or 0)

    def stats(self, session: Session) -> CacheTableStats:
        now = utcnow()
        total = session.execute(select(func.count()).select_from(SearchCacheModel)).scalar_one()
        expired = session.execute(
            select(func.count()).select_from(SearchCacheModel).where(SearchCacheModel.expires_at <= now)
        ).scalar_one()
        grouped = session.execute(
            select(SearchCacheModel.entity_type, func.count())
            .group_by(SearchCacheModel.entity_type)
            .order_by(SearchCacheModel.entity_type)
        ).all()
        return CacheTableStats(
            total=int(total),
            expired=int(expired),
            by_entity_type=[
                EntityTypeCount(entity_type=entity_type.value, count=int(count))
                for entity_type, count in grouped
            ],
        )


search_cache = SearchCacheRepository()

__all__ = ["DEFAULT_CACHE_HOURS", "SearchCacheRepository", "search_cache"]
