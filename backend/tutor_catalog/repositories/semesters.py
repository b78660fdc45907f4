"""Semester repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import SemesterModel
from .base import CatalogRepository


class SemesterRepository(CatalogRepository[SemesterModel]):
    model = SemesterModel

    def find_by_external_id(
        self, session: Session, course_id: str, source_id: str, external_id: str
    ) -> Optional[SemesterModel]:
        stmt = select(SemesterModel).where(
            SemesterModel.course_id == course_id,
            SemesterModel.source_id == source_id,
            SemesterModel.external_id == external_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_by_course_and_number(self, session: Session, course_id: str, number: int) -> Optional[SemesterModel]:
        stmt = select(SemesterModel).where(
            SemesterModel.course_id == course_id,
            SemesterModel.number == number,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_by_course_id(self, session: Session, course_id: str) -> list[SemesterModel]:
        stmt = (
            select(SemesterModel)
            .where(SemesterModel.course_id == course_id, SemesterModel.is_canonical.is_(True))
            .order_by(SemesterModel.number.asc())
        )
        return list(session.execute(stmt).scalars())

    def _release_number(self, session: Session, course_id: str, number: int, *, keep: SemesterModel) -> None:
        """Park the semester currently holding ``number`` on an unused negative number."""
        holder = self.find_by_course_and_number(session, course_id, number)
        if holder is None or holder.id == keep.id:
            return
        lowest = session.execute(
            select(func.min(SemesterModel.number)).where(SemesterModel.course_id == course_id)
        ).scalar_one()
        holder.number = min(lowest or 0, 0) - 1
        session.flush()

    def upsert(
        self,
        session: Session,
        *,
        course_id: str,
        source_id: str,
        external_id: str,
        name: str,
        number: int,
        position: Optional[int] = None,
    ) -> SemesterModel:
        """Insert or update by (course, source, external id).

        A course holds one semester per number; a second source reporting the
        same number is folded into the existing row.
        """
        semester = self.find_by_external_id(session, course_id, source_id, external_id)
        if semester is None:
            semester = self.find_by_course_and_number(session, course_id, number)
        if semester is None:
            semester = SemesterModel(
                course_id=course_id,
                source_id=source_id,
                external_id=external_id,
                name=name,
                number=number,
                position=position if position is not None else max(number - 1, 0),
            )
            session.add(semester)
        else:
            if semester.number != number:
                self._release_number(session, course_id, number, keep=semester)
            semester.name = name
            semester.number = number
            if position is not None:
                semester.position = position
        session.flush()
        return semester


semesters = SemesterRepository()

__all__ = ["SemesterRepository", "semesters"]
