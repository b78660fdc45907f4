"""ORM models backing the catalog cache and its analytics tables."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin, utcnow

JSONType = JSON


class EntityType(str, enum.Enum):
    UNIVERSITY = "UNIVERSITY"
    COURSE = "COURSE"
    SEMESTER = "SEMESTER"
    SUBJECT = "SUBJECT"


EntityTypeColumn = Enum(
    EntityType,
    name="entity_type",
    native_enum=False,
    length=16,
    values_callable=lambda members: [member.value for member in members],
)


def _uuid() -> str:
    return str(uuid.uuid4())


class ExternalSourceModel(TimestampMixin, Base):
    __tablename__ = "external_sources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    api_endpoint: Mapped[str | None] = mapped_column(Text)
    rate_limit: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class UniversityModel(TimestampMixin, Base):
    __tablename__ = "universities"
    __table_args__ = (
        UniqueConstraint("source_id", "external_id", name="uq_universities_source_external"),
        Index("ix_universities_normalized_canonical", "normalized_name", "is_canonical"),
        Index("ix_universities_country_canonical", "country", "is_canonical"),
        Index("ix_universities_provider", "provider"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_sources.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str | None] = mapped_column(String(100))
    type: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    domain: Mapped[str | None] = mapped_column(String(255))
    web_page: Mapped[str | None] = mapped_column(String(500))
    alpha_code: Mapped[str | None] = mapped_column(String(10))
    provider: Mapped[str] = mapped_column(String(50), default="unknown", nullable=False)
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    canonical_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("universities.id", ondelete="SET NULL"), nullable=True
    )

    source: Mapped[ExternalSourceModel] = relationship()
    courses: Mapped[list["CourseModel"]] = relationship(
        back_populates="university", cascade="all, delete-orphan"
    )


class CourseModel(TimestampMixin, Base):
    __tablename__ = "courses"
    __table_args__ = (
        UniqueConstraint("source_id", "external_id", name="uq_courses_source_external"),
        Index("ix_courses_university_canonical", "university_id", "is_canonical"),
        Index("ix_courses_normalized_name", "normalized_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_sources.id", ondelete="CASCADE"), nullable=False
    )
    university_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("universities.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    duration: Mapped[str | None] = mapped_column(String(50))
    total_semesters: Mapped[int] = mapped_column(Integer, default=8, nullable=False)
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    canonical_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True
    )

    university: Mapped[UniversityModel] = relationship(back_populates="courses")
    semesters: Mapped[list["SemesterModel"]] = relationship(
        back_populates="course", cascade="all, delete-orphan"
    )


class SemesterModel(TimestampMixin, Base):
    __tablename__ = "semesters"
    __table_args__ = (
        UniqueConstraint(
            "course_id", "source_id", "external_id", name="uq_semesters_course_source_external"
        ),
        UniqueConstraint("course_id", "number", name="uq_semesters_course_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_sources.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    canonical_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    course: Mapped[CourseModel] = relationship(back_populates="semesters")
    subjects: Mapped[list["SubjectModel"]] = relationship(
        back_populates="semester", cascade="all, delete-orphan"
    )


class SubjectModel(TimestampMixin, Base):
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint(
            "semester_id", "source_id", "external_id", name="uq_subjects_semester_source_external"
        ),
        UniqueConstraint("semester_id", "code", name="uq_subjects_semester_code"),
        Index("ix_subjects_normalized_name", "normalized_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("external_sources.id", ondelete="CASCADE"), nullable=False
    )
    semester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20))
    credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    marks: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    metadata_payload: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    canonical_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    semester: Mapped[SemesterModel] = relationship(back_populates="subjects")


class SearchCacheModel(TimestampMixin, Base):
    __tablename__ = "search_cache"
    __table_args__ = (
        UniqueConstraint("normalized_query", "entity_type", name="uq_search_cache_query_entity"),
        Index("ix_search_cache_expires_at", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    normalized_query: Mapped[str] = mapped_column(String(500), nullable=False)
    entity_type: Mapped[EntityType] = mapped_column(EntityTypeColumn, nullable=False)
    result_ids: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    result_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    hit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class SearchLogModel(Base):
    __tablename__ = "search_logs"
    __table_args__ = (
        Index("ix_search_logs_user_created", "user_id", "created_at"),
        Index("ix_search_logs_entity_created", "entity_type", "created_at"),
        Index("ix_search_logs_normalized_query", "normalized_query"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    raw_query: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_query: Mapped[str] = mapped_column(String(500), nullable=False)
    entity_type: Mapped[EntityType] = mapped_column(EntityTypeColumn, nullable=False)
    cache_hit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    result_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    latency_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class ContentRefreshModel(Base):
    __tablename__ = "content_refresh"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_content_refresh_entity"),
        Index("ix_content_refresh_refreshed_at", "refreshed_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    entity_type: Mapped[EntityType] = mapped_column(EntityTypeColumn, nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    previous_hash: Mapped[str | None] = mapped_column(String(64))
    new_hash: Mapped[str | None] = mapped_column(String(64))
    has_changes: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


ENTITY_MODELS = {
    EntityType.UNIVERSITY: UniversityModel,
    EntityType.COURSE: CourseModel,
    EntityType.SEMESTER: SemesterModel,
    EntityType.SUBJECT: SubjectModel,
}


__all__ = [
    "ContentRefreshModel",
    "CourseModel",
    "ENTITY_MODELS",
    "EntityType",
    "ExternalSourceModel",
    "SearchCacheModel",
    "SearchLogModel",
    "SemesterModel",
    "SubjectModel",
    "UniversityModel",
]
