"""Repository tracking when catalog entities were last refreshed upstream."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import ENTITY_MODELS, ContentRefreshModel, EntityType


class ContentRefreshRepository:
    def get(self, session: Session, entity_type: EntityType, entity_id: str) -> Optional[ContentRefreshModel]:
        stmt = select(ContentRefreshModel).where(
            ContentRefreshModel.entity_type == entity_type,
            ContentRefreshModel.entity_id == entity_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def record(
        self,
        session: Session,
        entity_type: EntityType,
        entity_id: str,
        *,
        success: bool,
        new_hash: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> ContentRefreshModel:
        """Store the latest refresh attempt; one row per entity.

        ``has_changes`` compares against the last successful hash. A failed
        attempt keeps the previous hash so the next success diffs correctly.
        """
        row = self.get(session, entity_type, entity_id)
        if row is None:
            row = ContentRefreshModel(entity_type=entity_type, entity_id=entity_id)
            session.add(row)
        previous = row.new_hash
        row.refreshed_at = utcnow()
        row.success = success
        row.error_message = error_message
        if success:
            row.previous_hash = previous
            row.new_hash = new_hash
            row.has_changes = previous is not None and new_hash is not None and previous != new_hash
        else:
            row.has_changes = False
        session.flush()
        return row

    def needs_refresh(
        self, session: Session, entity_type: EntityType, entity_id: str, max_age_hours: int = 24
    ) -> bool:
        row = self.get(session, entity_type, entity_id)
        if row is None or not row.success:
            return True
        cutoff = utcnow() - timedelta(hours=max_age_hours)
        refreshed_at = row.refreshed_at
        if refreshed_at.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=None)
        return refreshed_at <= cutoff

    def _stale_filter(self, entity_type: EntityType, max_age_hours: int):  # type: ignore[no-untyped-def]
        cutoff = utcnow() - timedelta(hours=max_age_hours)
        return or_(
            ContentRefreshModel.id.is_(None),
            ContentRefreshModel.success.is_(False),
            ContentRefreshModel.refreshed_at <= cutoff,
        )

    def _joined(self, stmt, entity_type: EntityType):  # type: ignore[no-untyped-def]
        model = ENTITY_MODELS[entity_type]
        return stmt.outerjoin(
            ContentRefreshModel,
            and_(
                ContentRefreshModel.entity_type == entity_type,
                ContentRefreshModel.entity_id == model.id,
            ),
        ).where(model.is_canonical.is_(True))

    def stale_entity_ids(
        self,
        session: Session,
        entity_type: EntityType,
        max_age_hours: int = 24,
        limit: int = 100,
    ) -> list[tuple[str, Optional[datetime]]]:
        """Canonical entities never refreshed, last refreshed unsuccessfully, or too old.

        Oldest first; entities never refreshed lead.
        """
        model = ENTITY_MODELS[entity_type]
        stmt = self._joined(select(model.id, ContentRefreshModel.refreshed_at).select_from(model), entity_type)
        stmt = (
            stmt.where(self._stale_filter(entity_type, max_age_hours))
            .order_by(ContentRefreshModel.refreshed_at.asc().nulls_first(), model.created_at.asc())
            .limit(limit)
        )
        return [(entity_id, refreshed_at) for entity_id, refreshed_at in session.execute(stmt).all()]

    def stats(self, session: Session, entity_type: EntityType, max_age_hours: int = 24) -> tuple[int, int]:
        """Return ``(total canonical entities, stale entities)`` for a type."""
        model = ENTITY_MODELS[entity_type]
        total = session.execute(
            select(func.count()).select_from(model).where(model.is_canonical.is_(True))
        ).scalar_one()
        stale_stmt = self._joined(select(func.count()).select_from(model), entity_type).where(
            self._stale_filter(entity_type, max_age_hours)
        )
        stale = session.execute(stale_stmt).scalar_one()
        return int(total), int(stale)

    def delete_old(self, session: Session, days_to_keep: int = 30) -> int:
        cutoff = utcnow() - timedelta(days=days_to_keep)
        stmt = delete(ContentRefreshModel).where(ContentRefreshModel.refreshed_at < cutoff)
        return int(session.execute(stmt).rowcount or 0)


content_refresh = ContentRefreshRepository()

__all__ = ["ContentRefreshRepository", "content_refresh"]
