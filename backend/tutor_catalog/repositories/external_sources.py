"""Repository for the providers that feed catalog data."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import ExternalSourceModel


class ExternalSourceRepository:
    def find_by_name(self, session: Session, name: str) -> Optional[ExternalSourceModel]:
        stmt = select(ExternalSourceModel).where(ExternalSourceModel.name == name)
        return session.execute(stmt).scalar_one_or_none()

    def find_by_id(self, session: Session, source_id: str) -> Optional[ExternalSourceModel]:
        return session.get(ExternalSourceModel, source_id)

    def find_or_create(
        self, session: Session, name: str, api_endpoint: Optional[str] = None
    ) -> ExternalSourceModel:
        source = self.find_by_name(session, name)
        if source is None:
            source = ExternalSourceModel(name=name, api_endpoint=api_endpoint)
            session.add(source)
            session.flush()
        elif api_endpoint and not source.api_endpoint:
            source.api_endpoint = api_endpoint
        return source

    def update_last_sync(self, session: Session, name: str) -> Optional[ExternalSourceModel]:
        source = self.find_by_name(session, name)
        if source is None:
            return None
        source.last_sync = utcnow()
        session.flush()
        return source

    def find_all_active(self, session: Session) -> list[ExternalSourceModel]:
        stmt = (
            select(ExternalSourceModel)
            .where(ExternalSourceModel.is_active.is_(True))
            .order_by(ExternalSourceModel.name.asc())
        )
        return list(session.execute(stmt).scalars())


external_sources = ExternalSourceRepository()

__all__ = ["ExternalSourceRepository", "external_sources"]
