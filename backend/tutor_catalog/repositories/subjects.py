"""Subject repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import SubjectModel
from .base import CatalogRepository


class SubjectRepository(CatalogRepository[SubjectModel]):
    model = SubjectModel

    def find_by_external_id(
        self, session: Session, semester_id: str, source_id: str, external_id: str
    ) -> Optional[SubjectModel]:
        stmt = select(SubjectModel).where(
            SubjectModel.semester_id == semester_id,
            SubjectModel.source_id == source_id,
            SubjectModel.external_id == external_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_by_code(self, session: Session, semester_id: str, code: str) -> Optional[SubjectModel]:
        stmt = select(SubjectModel).where(
            SubjectModel.semester_id == semester_id,
            SubjectModel.code == code,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_by_semester_id(self, session: Session, semester_id: str) -> list[SubjectModel]:
        stmt = (
            select(SubjectModel)
            .where(SubjectModel.semester_id == semester_id, SubjectModel.is_canonical.is_(True))
            .order_by(SubjectModel.name.asc())
        )
        return list(session.execute(stmt).scalars())

    def search_by_name(self, session: Session, semester_id: str, query: str, limit: int = 20) -> list[SubjectModel]:
        stmt = (
            select(SubjectModel)
            .where(
                SubjectModel.semester_id == semester_id,
                SubjectModel.is_canonical.is_(True),
                SubjectModel.normalized_name.contains(query.lower().strip(), autoescape=True),
            )
            .order_by(SubjectModel.name.asc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def _release_code(self, session: Session, semester_id: str, code: str, *, keep: SubjectModel) -> None:
        holder = self.find_by_code(session, semester_id, code)
        if holder is None or holder.id == keep.id:
            return
        # NULL codes do not collide under the per-semester unique constraint.
        holder.code = None
        session.flush()

    def upsert(
        self,
        session: Session,
        *,
        semester_id: str,
        source_id: str,
        external_id: str,
        name: str,
        normalized_name: str,
        code: Optional[str] = None,
        credits: int = 0,
        marks: int = 100,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubjectModel:
        """Insert or update by (semester, source, external id).

        Subject codes are unique within a semester, so a row from another
        source carrying the same code is updated instead of duplicated.
        """
        subject = self.find_by_external_id(session, semester_id, source_id, external_id)
        if subject is None and code:
            subject = self.find_by_code(session, semester_id, code)
        if subject is None:
            subject = SubjectModel(
                semester_id=semester_id,
                source_id=source_id,
                external_id=external_id,
                name=name,
                normalized_name=normalized_name,
                code=code,
                credits=credits,
                marks=marks,
                metadata_payload=metadata,
            )
            session.add(subject)
        else:
            if code and subject.code != code:
                self._release_code(session, semester_id, code, keep=subject)
            subject.name = name
            subject.normalized_name = normalized_name
            subject.code = code
            subject.credits = credits
            subject.marks = marks
            if metadata is not None:
                subject.metadata_payload = metadata
        session.flush()
        return subject


subjects = SubjectRepository()

__all__ = ["SubjectRepository", "subjects"]
