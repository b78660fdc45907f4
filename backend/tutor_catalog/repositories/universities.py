"""University repository with canonical-record lookups."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import UniversityModel
from .base import CatalogRepository

_UPDATABLE_FIELDS = ("name", "normalized_name", "country", "type", "state", "domain", "web_page", "alpha_code")


class UniversityRepository(CatalogRepository[UniversityModel]):
    model = UniversityModel

    def find_by_external_id(
        self, session: Session, source_id: str, external_id: str
    ) -> Optional[UniversityModel]:
        stmt = select(UniversityModel).where(
            UniversityModel.source_id == source_id,
            UniversityModel.external_id == external_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def find_canonical_by_normalized_name(
        self, session: Session, normalized_name: str
    ) -> Optional[UniversityModel]:
        stmt = (
            select(UniversityModel)
            .where(
                UniversityModel.normalized_name == normalized_name,
                UniversityModel.is_canonical.is_(True),
            )
            .order_by(UniversityModel.created_at.asc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def search_by_name(self, session: Session, normalized_query: str, limit: int = 20) -> list[UniversityModel]:
        """Canonical universities whose normalized name contains the query."""
        stmt = (
            select(UniversityModel)
            .where(
                UniversityModel.is_canonical.is_(True),
                UniversityModel.normalized_name.contains(normalized_query.lower().strip(), autoescape=True),
            )
            .order_by(UniversityModel.name.asc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def create(self, session: Session, **fields: Any) -> UniversityModel:
        university = UniversityModel(**fields)
        session.add(university)
        session.flush()
        return university

    def upsert(self, session: Session, *, source_id: str, external_id: str, **fields: Any) -> UniversityModel:
        existing = self.find_by_external_id(session, source_id, external_id)
        if existing is None:
            return self.create(session, source_id=source_id, external_id=external_id, **fields)
        for key in _UPDATABLE_FIELDS:
            if key in fields:
                setattr(existing, key, fields[key])
        session.flush()
        return existing

    def find_all_canonical(self, session: Session) -> list[UniversityModel]:
        stmt = (
            select(UniversityModel)
            .where(UniversityModel.is_canonical.is_(True))
            .order_by(UniversityModel.name.asc())
        )
        return list(session.execute(stmt).scalars())

    def count(self, session: Session) -> int:
        stmt = select(func.count()).select_from(UniversityModel).where(UniversityModel.is_canonical.is_(True))
        return int(session.execute(stmt).scalar_one())


universities = UniversityRepository()

__all__ = ["UniversityRepository", "universities"]
