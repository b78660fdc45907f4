"""Content freshness tracking and per-entity refresh."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import as_utc, utcnow
from ..db.models import EntityType
from ..db.session import session_scope
from ..errors import CatalogNotFoundError
from ..exam_api import ExamAPIClient
from ..normalization import content_hash
from ..repositories import content_refresh, courses, semesters, subjects
from ..schemas import (
    CourseResult,
    FreshnessStatus,
    RefreshOutcome,
    RefreshStats,
    RefreshTypeStats,
    SemesterResult,
    SubjectResult,
)
from .cache import invalidate_cache
from .catalog import (
    course_semesters_key,
    fetch_courses,
    fetch_semesters,
    fetch_subjects,
    semester_subjects_key,
    university_courses_key,
)

logger = logging.getLogger(__name__)


def _hours_since(value: datetime) -> float:
    return (utcnow() - as_utc(value)).total_seconds() / 3600


def check_freshness(entity_type: EntityType, entity_id: str) -> FreshnessStatus:
    max_age = get_settings().refresh_max_age_hours
    with session_scope(commit=False) as session:
        row = content_refresh.get(session, entity_type, entity_id)
        if row is None:
            return FreshnessStatus(entity_type=entity_type.value, entity_id=entity_id, needs_refresh=True)
        hours_stale = _hours_since(row.refreshed_at)
        return FreshnessStatus(
            entity_type=entity_type.value,
            entity_id=entity_id,
            last_refreshed_at=as_utc(row.refreshed_at),
            needs_refresh=not row.success or hours_stale >= max_age,
            hours_stale=hours_stale,
        )


def mark_refreshed(
    entity_type: EntityType,
    entity_id: str,
    checksum: Optional[str] = None,
    *,
    success: bool = True,
    error_message: Optional[str] = None,
) -> bool:
    """Record a refresh attempt and report whether the checksum moved."""
    with session_scope() as session:
        row = content_refresh.record(
            session,
            entity_type,
            entity_id,
            success=success,
            new_hash=checksum,
            error_message=error_message,
        )
        return row.has_changes


def stale_entities(entity_type: EntityType, limit: int = 100) -> List[FreshnessStatus]:
    max_age = get_settings().refresh_max_age_hours
    with session_scope(commit=False) as session:
        rows = content_refresh.stale_entity_ids(session, entity_type, max_age_hours=max_age, limit=limit)
    return [
        FreshnessStatus(
            entity_type=entity_type.value,
            entity_id=entity_id,
            last_refreshed_at=as_utc(refreshed_at) if refreshed_at is not None else None,
            needs_refresh=True,
            hours_stale=_hours_since(refreshed_at) if refreshed_at is not None else None,
        )
        for entity_id, refreshed_at in rows
    ]


def refresh_stats() -> RefreshStats:
    max_age = get_settings().refresh_max_age_hours
    by_type = {}
    with session_scope(commit=False) as session:
        for entity_type in EntityType:
            total, stale = content_refresh.stats(session, entity_type, max_age_hours=max_age)
            by_type[entity_type.value] = RefreshTypeStats(total=total, stale=stale, fresh=total - stale)
    return RefreshStats(
        by_type=by_type,
        total_entities=sum(stats.total for stats in by_type.values()),
        total_stale=sum(stats.stale for stats in by_type.values()),
    )


_Listing = Tuple[str, EntityType, Type[BaseModel], list]


def _refetch_children(
    session: Session, entity_type: EntityType, entity_id: str, client: Optional[ExamAPIClient]
) -> _Listing:
    """Re-pull the listing that hangs off an entity; returns its cache key, type, schema and rows."""
    if entity_type is EntityType.UNIVERSITY:
        rows = fetch_courses(session, entity_id, client)
        return university_courses_key(entity_id), EntityType.COURSE, CourseResult, rows

    if entity_type is EntityType.COURSE:
        course = courses.find_by_id(session, entity_id)
        if course is None:
            raise CatalogNotFoundError("Course", entity_id)
        rows = fetch_semesters(session, course.university_id, course.id, client)
        return course_semesters_key(entity_id), EntityType.SEMESTER, SemesterResult, rows

    if entity_type is EntityType.SEMESTER:
        semester = semesters.find_by_id(session, entity_id)
        if semester is None:
            raise CatalogNotFoundError("Semester", entity_id)
    else:
        subject = subjects.find_by_id(session, entity_id)
        if subject is None:
            raise CatalogNotFoundError("Subject", entity_id)
        semester = subject.semester
    course = semester.course
    rows = fetch_subjects(session, course.university_id, course.id, semester.id, client)
    return semester_subjects_key(semester.id), EntityType.SUBJECT, SubjectResult, rows


def _listing_hash(schema: Type[BaseModel], rows: list) -> str:
    payload: List[Mapping[str, object]] = sorted(
        (schema.model_validate(row).model_dump() for row in rows),
        key=lambda item: str(item["id"]),
    )
    return content_hash(payload)


def refresh_entity(
    entity_type: EntityType, entity_id: str, *, client: Optional[ExamAPIClient] = None
) -> RefreshOutcome:
    """Re-fetch an entity's children, record the refresh and drop stale cache entries.

    Failures are recorded with ``success=False`` and reported in the outcome
    rather than raised.
    """
    try:
        with session_scope() as session:
            key, child_type, schema, rows = _refetch_children(session, entity_type, entity_id, client)
            checksum = _listing_hash(schema, rows)
            record = content_refresh.record(session, entity_type, entity_id, success=True, new_hash=checksum)
            has_changes = record.has_changes
            if has_changes:
                invalidate_cache(session, key, child_type)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Refresh failed for %s %s", entity_type.value, entity_id)
        mark_refreshed(entity_type, entity_id, success=False, error_message=str(exc)[:1000])
        return RefreshOutcome(
            entity_type=entity_type.value,
            entity_id=entity_id,
            success=False,
            error=str(exc),
        )

    logger.debug("Refreshed %s %s (changed=%s)", entity_type.value, entity_id, has_changes)
    return RefreshOutcome(
        entity_type=entity_type.value,
        entity_id=entity_id,
        success=True,
        has_changes=has_changes,
    )


__all__ = [
    "check_freshness",
    "mark_refreshed",
    "refresh_entity",
    "refresh_stats",
    "stale_entities",
]
