"""Cache-first lookups for the exam catalog.

Each lookup checks the search cache, falls back to stored rows and then to
the exam API, stores whatever the API returns through the normalization
service and caches the resulting canonical ids.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session

from ..db.models import CourseModel, EntityType, SemesterModel, SubjectModel
from ..db.session import session_scope
from ..errors import CatalogNotFoundError, InvalidQueryError
from ..exam_api import ExamAPIClient, get_exam_api_client
from ..normalization import normalize_search_query
from ..repositories import courses, semesters, subjects, universities
from ..repositories.base import CatalogRepository
from ..schemas import (
    CourseListResponse,
    CourseResult,
    SearchMeta,
    SemesterListResponse,
    SemesterResult,
    SubjectListResponse,
    SubjectResult,
    UniversityListResponse,
    UniversityResult,
    dump_rows,
)
from ..telemetry import emit_event
from .cache import get_cached_search, invalidate_cache, set_cached_search
from .normalization import (
    normalize_and_store_course,
    normalize_and_store_semester,
    normalize_and_store_subject,
    normalize_and_store_university,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

SEARCH_COMPLETED_EVENT = "catalog_search_completed"


def university_courses_key(university_id: str) -> str:
    return f"uni:{university_id}"


def course_semesters_key(course_id: str) -> str:
    return f"course:{course_id}"


def semester_subjects_key(semester_id: str) -> str:
    return f"semester:{semester_id}"


def _elapsed_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)


def _canonical(session: Session, repository: CatalogRepository[ModelT], rows: Sequence[ModelT]) -> List[ModelT]:
    """Swap duplicates for their canonical rows, keeping first-seen order."""
    seen: set[str] = set()
    resolved: List[ModelT] = []
    for row in rows:
        representative = repository.resolve_canonical(session, row)
        row_id = representative.id  # type: ignore[attr-defined]
        if row_id not in seen:
            seen.add(row_id)
            resolved.append(representative)
    return resolved


def _from_cache(
    session: Session,
    key: str,
    entity_type: EntityType,
    repository: CatalogRepository[ModelT],
) -> Optional[List[ModelT]]:
    cached = get_cached_search(session, key, entity_type)
    if cached is None:
        return None
    rows = repository.find_by_ids(session, cached.result_ids)
    if len(rows) != len(cached.result_ids):
        logger.info("Cached %s ids for %r no longer resolve; dropping entry", entity_type.value, key)
        invalidate_cache(session, key, entity_type)
        return None
    return _canonical(session, repository, rows)


def _store_ids(session: Session, key: str, entity_type: EntityType, rows: Sequence[object]) -> None:
    if rows:
        set_cached_search(session, key, entity_type, [row.id for row in rows])  # type: ignore[attr-defined]


def _log_search(
    user_id: Optional[str],
    raw_query: str,
    normalized_query: str,
    entity_type: EntityType,
    cache_hit: bool,
    result_count: int,
    latency_ms: int,
) -> None:
    emit_event(
        SEARCH_COMPLETED_EVENT,
        user_id=user_id,
        raw_query=raw_query,
        normalized_query=normalized_query,
        entity_type=entity_type,
        cache_hit=cache_hit,
        result_count=result_count,
        latency_ms=latency_ms,
    )


def search_universities(
    query: str,
    user_id: Optional[str] = None,
    *,
    client: Optional[ExamAPIClient] = None,
    log: bool = True,
) -> UniversityListResponse:
    started = perf_counter()
    normalized_query = normalize_search_query(query)
    if not normalized_query:
        raise InvalidQueryError("Search query must contain letters or digits.")

    with session_scope() as session:
        rows = _from_cache(session, normalized_query, EntityType.UNIVERSITY, universities)
        cache_hit = rows is not None
        if rows is None:
            exam_api = client or get_exam_api_client()
            stored = [
                normalize_and_store_university(
                    session,
                    record.id,
                    exam_api.source_name,
                    record.name,
                    record.country,
                    record.type,
                )
                for record in exam_api.search_universities(query)
            ]
            rows = _canonical(session, universities, stored)
            _store_ids(session, normalized_query, EntityType.UNIVERSITY, rows)
        items = dump_rows(UniversityResult, rows)

    latency_ms = _elapsed_ms(started)
    if log:
        _log_search(user_id, query, normalized_query, EntityType.UNIVERSITY, cache_hit, len(items), latency_ms)
    return UniversityListResponse(universities=items, meta=SearchMeta(cache_hit=cache_hit, latency_ms=latency_ms))


def fetch_courses(session: Session, university_id: str, client: Optional[ExamAPIClient] = None) -> List[CourseModel]:
    """Pull a university's courses from the exam API and store them."""
    university = universities.find_by_id(session, university_id)
    if university is None:
        raise CatalogNotFoundError("University", university_id)
    exam_api = client or get_exam_api_client()
    stored = [
        normalize_and_store_course(
            session,
            record.id,
            exam_api.source_name,
            university_id,
            record.name,
            record.description,
            record.duration,
            record.total_semesters,
        )
        for record in exam_api.get_courses(university.external_id)
    ]
    return _canonical(session, courses, stored)


def fetch_semesters(
    session: Session, university_id: str, course_id: str, client: Optional[ExamAPIClient] = None
) -> List[SemesterModel]:
    university = universities.find_by_id(session, university_id)
    if university is None:
        raise CatalogNotFoundError("University", university_id)
    course = courses.find_by_id(session, course_id)
    if course is None:
        raise CatalogNotFoundError("Course", course_id)
    exam_api = client or get_exam_api_client()
    stored = [
        normalize_and_store_semester(session, record.id, exam_api.source_name, course_id, record.name, record.number)
        for record in exam_api.get_semesters(university.external_id, course.external_id)
    ]
    return sorted(_canonical(session, semesters, stored), key=lambda semester: semester.number)


def fetch_subjects(
    session: Session,
    university_id: str,
    course_id: str,
    semester_id: str,
    client: Optional[ExamAPIClient] = None,
) -> List[SubjectModel]:
    university = universities.find_by_id(session, university_id)
    if university is None:
        raise CatalogNotFoundError("University", university_id)
    course = courses.find_by_id(session, course_id)
    if course is None:
        raise CatalogNotFoundError("Course", course_id)
    semester = semesters.find_by_id(session, semester_id)
    if semester is None:
        raise CatalogNotFoundError("Semester", semester_id)
    exam_api = client or get_exam_api_client()
    stored = [
        normalize_and_store_subject(
            session,
            record.id,
            exam_api.source_name,
            semester_id,
            record.name,
            record.code,
            record.credits,
            record.marks,
            record.metadata,
        )
        for record in exam_api.get_subjects(university.external_id, course.external_id, semester.external_id)
    ]
    return _canonical(session, subjects, stored)


def get_courses(
    university_id: str,
    user_id: Optional[str] = None,
    *,
    client: Optional[ExamAPIClient] = None,
) -> CourseListResponse:
    started = perf_counter()
    key = university_courses_key(university_id)
    with session_scope() as session:
        rows = _from_cache(session, key, EntityType.COURSE, courses)
        cache_hit = rows is not None
        if rows is None:
            rows = courses.find_by_university_id(session, university_id)
            if not rows:
                rows = fetch_courses(session, university_id, client)
            _store_ids(session, key, EntityType.COURSE, rows)
        items = dump_rows(CourseResult, rows)

    latency_ms = _elapsed_ms(started)
    _log_search(user_id, key, key, EntityType.COURSE, cache_hit, len(items), latency_ms)
    return CourseListResponse(courses=items, meta=SearchMeta(cache_hit=cache_hit, latency_ms=latency_ms))


def get_semesters(
    university_id: str,
    course_id: str,
    user_id: Optional[str] = None,
    *,
    client: Optional[ExamAPIClient] = None,
) -> SemesterListResponse:
    started = perf_counter()
    key = course_semesters_key(course_id)
    with session_scope() as session:
        rows = _from_cache(session, key, EntityType.SEMESTER, semesters)
        cache_hit = rows is not None
        if rows is None:
            rows = semesters.find_by_course_id(session, course_id)
            if not rows:
                rows = fetch_semesters(session, university_id, course_id, client)
            _store_ids(session, key, EntityType.SEMESTER, rows)
        items = dump_rows(SemesterResult, rows)

    latency_ms = _elapsed_ms(started)
    _log_search(user_id, key, key, EntityType.SEMESTER, cache_hit, len(items), latency_ms)
    return SemesterListResponse(semesters=items, meta=SearchMeta(cache_hit=cache_hit, latency_ms=latency_ms))


def get_subjects(
    university_id: str,
    course_id: str,
    semester_id: str,
    user_id: Optional[str] = None,
    *,
    client: Optional[ExamAPIClient] = None,
) -> SubjectListResponse:
    started = perf_counter()
    key = semester_subjects_key(semester_id)
    with session_scope() as session:
        rows = _from_cache(session, key, EntityType.SUBJECT, subjects)
        cache_hit = rows is not None
        if rows is None:
            rows = subjects.find_by_semester_id(session, semester_id)
            if not rows:
                rows = fetch_subjects(session, university_id, course_id, semester_id, client)
            _store_ids(session, key, EntityType.SUBJECT, rows)
        items = dump_rows(SubjectResult, rows)

    latency_ms = _elapsed_ms(started)
    _log_search(user_id, key, key, EntityType.SUBJECT, cache_hit, len(items), latency_ms)
    return SubjectListResponse(subjects=items, meta=SearchMeta(cache_hit=cache_hit, latency_ms=latency_ms))


__all__ = [
    "SEARCH_COMPLETED_EVENT",
    "course_semesters_key",
    "fetch_courses",
    "fetch_semesters",
    "fetch_subjects",
    "get_courses",
    "get_semesters",
    "get_subjects",
    "search_universities",
    "semester_subjects_key",
    "university_courses_key",
]
