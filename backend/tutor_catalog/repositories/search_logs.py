"""Repository for the search analytics log."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import EntityType, SearchLogModel
from ..schemas import EntityTypeSearchStats, SearchStats
from .base import Page, offset_for


class SearchLogRepository:
    def create(
        self,
        session: Session,
        *,
        raw_query: str,
        normalized_query: str,
        entity_type: EntityType,
        cache_hit: bool,
        result_count: int,
        latency_ms: int,
        user_id: Optional[str] = None,
    ) -> SearchLogModel:
        entry = SearchLogModel(
            user_id=user_id,
            raw_query=raw_query[:500],
            normalized_query=normalized_query[:500],
            entity_type=entity_type,
            cache_hit=cache_hit,
            result_count=max(int(result_count), 0),
            latency_ms=max(int(latency_ms), 0),
        )
        session.add(entry)
        session.flush()
        return entry

    def find_by_user(self, session: Session, user_id: str, page: int = 1, limit: int = 50) -> Page[SearchLogModel]:
        total = session.execute(
            select(func.count()).select_from(SearchLogModel).where(SearchLogModel.user_id == user_id)
        ).scalar_one()
        stmt = (
            select(SearchLogModel)
            .where(SearchLogModel.user_id == user_id)
            .order_by(SearchLogModel.created_at.desc())
            .offset(offset_for(page, limit))
            .limit(limit)
        )
        rows = list(session.execute(stmt).scalars())
        return Page(data=rows, total=int(total), page=page, limit=limit)

    def popular_searches(
        self,
        session: Session,
        entity_type: Optional[EntityType] = None,
        days: int = 7,
        limit: int = 20,
    ) -> list[tuple[str, int]]:
        since = utcnow() - timedelta(days=days)
        hits = func.count(SearchLogModel.id).label("hits")
        stmt = select(SearchLogModel.normalized_query, hits).where(SearchLogModel.created_at >= since)
        if entity_type is not None:
            stmt = stmt.where(SearchLogModel.entity_type == entity_type)
        stmt = (
            stmt.group_by(SearchLogModel.normalized_query)
            .order_by(hits.desc(), SearchLogModel.normalized_query.asc())
            .limit(limit)
        )
        return [(query, int(count)) for query, count in session.execute(stmt).all()]

    def analytics(self, session: Session, days: int = 30) -> SearchStats:
        """Totals, hit rate and latency for the window, overall and per entity type."""
        since = utcnow() - timedelta(days=days)
        hit_expr = func.sum(case((SearchLogModel.cache_hit.is_(True), 1), else_=0))
        overall = session.execute(
            select(func.count(SearchLogModel.id), hit_expr, func.avg(SearchLogModel.latency_ms)).where(
                SearchLogModel.created_at >= since
            )
        ).one()
        total, hits, avg_latency = int(overall[0] or 0), int(overall[1] or 0), float(overall[2] or 0.0)

        per_type = session.execute(
            select(SearchLogModel.entity_type, func.count(SearchLogModel.id), hit_expr)
            .where(SearchLogModel.created_at >= since)
            .group_by(SearchLogModel.entity_type)
        ).all()
        return SearchStats(
            total_searches=total,
            cache_hit_rate=hits / total if total else 0.0,
            average_latency_ms=avg_latency,
            by_entity_type={
                entity_type.value: EntityTypeSearchStats(
                    count=int(count),
                    cache_hit_rate=(int(type_hits or 0) / int(count)) if count else 0.0,
                )
                for entity_type, count, type_hits in per_type
            },
        )

    def slow_queries(
        self, session: Session, threshold_ms: int = 1000, limit: int = 50
    ) -> list[SearchLogModel]:
        stmt = (
            select(SearchLogModel)
            .where(SearchLogModel.latency_ms >= threshold_ms)
            .order_by(SearchLogModel.latency_ms.desc(), SearchLogModel.created_at.desc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())


search_logs = SearchLogRepository()

__all__ = ["SearchLogRepository", "search_logs"]
