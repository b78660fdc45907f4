"""Course repository."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import CourseModel
from .base import CatalogRepository

_UPDATABLE_FIELDS = ("name", "normalized_name", "description", "duration", "total_semesters")


class CourseRepository(CatalogRepository[CourseModel]):
    model = CourseModel

    def find_by_external_id(self, session: Session, source_id: str, external_id: str) -> Optional[CourseModel]:
        stmt = select(CourseModel).where(
            CourseModel.source_id == source_id,
            CourseModel.external_id == external_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_canonical_by_normalized_name(
        self, session: Session, university_id: str, normalized_name: str
    ) -> Optional[CourseModel]:
        stmt = (
            select(CourseModel)
            .where(
                CourseModel.university_id == university_id,
                CourseModel.normalized_name == normalized_name,
                CourseModel.is_canonical.is_(True),
            )
            .order_by(CourseModel.created_at.asc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_by_university_id(self, session: Session, university_id: str) -> list[CourseModel]:
        stmt = (
            select(CourseModel)
            .where(CourseModel.university_id == university_id, CourseModel.is_canonical.is_(True))
            .order_by(CourseModel.name.asc())
        )
        return list(session.execute(stmt).scalars())

    def search_by_name(
        self, session: Session, university_id: str, query: str, limit: int = 20
    ) -> list[CourseModel]:
        stmt = (
            select(CourseModel)
            .where(
                CourseModel.university_id == university_id,
                CourseModel.is_canonical.is_(True),
                CourseModel.normalized_name.contains(query.lower().strip(), autoescape=True),
            )
            .order_by(CourseModel.name.asc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def create(self, session: Session, **fields: Any) -> CourseModel:
        course = CourseModel(**fields)
        session.add(course)
        session.flush()
        return course

    def upsert(self, session: Session, *, source_id: str, external_id: str, **fields: Any) -> CourseModel:
        existing = self.find_by_external_id(session, source_id, external_id)
        if existing is None:
            return self.create(session, source_id=source_id, external_id=external_id, **fields)
        for key in _UPDATABLE_FIELDS:
            if key in fields and fields[key] is not None:
                setattr(existing, key, fields[key])
        session.flush()
        return existing


courses = CourseRepository()

__all__ = ["CourseRepository", "courses"]
