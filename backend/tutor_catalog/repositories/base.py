"""Shared helpers for catalog repositories."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

T = TypeVar("T")
ModelT = TypeVar("ModelT")


@dataclass
class Page(Generic[T]):
    data: List[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


def offset_for(page: int, limit: int) -> int:
    return max(page - 1, 0) * limit


class CatalogRepository(Generic[ModelT]):
    """Lookups shared by the university/course/semester/subject tables."""

    model: Type[ModelT]

    def find_by_id(self, session: Session, entity_id: str) -> Optional[ModelT]:
        return session.get(self.model, entity_id)

    def find_by_ids(self, session: Session, ids: Iterable[str]) -> List[ModelT]:
        """Return rows for ``ids`` in the order given, skipping unknown ids."""
        wanted = list(ids)
        if not wanted:
            return []
        stmt = select(self.model).where(self.model.id.in_(wanted))  # type: ignore[attr-defined]
        rows = {row.id: row for row in session.execute(stmt).scalars()}  # type: ignore[attr-defined]
        return [rows[entity_id] for entity_id in wanted if entity_id in rows]

    def map_to_canonical(self, session: Session, entity_id: str, canonical_id: str) -> ModelT:
        row = self.find_by_id(session, entity_id)
        if row is None:
            raise LookupError(f"{self.model.__name__} '{entity_id}' does not exist.")
        if entity_id == canonical_id:
            raise ValueError("A record cannot be mapped onto itself.")
        row.is_canonical = False  # type: ignore[attr-defined]
        row.canonical_id = canonical_id  # type: ignore[attr-defined]
        session.flush()
        return row

    def resolve_canonical(self, session: Session, row: ModelT) -> ModelT:
        """Follow ``canonical_id`` to the representative row."""
        canonical_id = getattr(row, "canonical_id", None)
        if getattr(row, "is_canonical", True) or not canonical_id:
            return row
        canonical = self.find_by_id(session, canonical_id)
        return canonical if canonical is not None else row


__all__ = ["CatalogRepository", "Page", "offset_for"]
