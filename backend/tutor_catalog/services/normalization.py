"""Normalize provider records and store them with canonical deduplication.

A record already known for its (source, external id) pair is returned as-is.
Otherwise universities and courses are matched on their normalized name: the
first row stored for a name is canonical and later rows from other sources
point at it through ``canonical_id``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from sqlalchemy.orm import Session

from ..db.models import CourseModel, SemesterModel, SubjectModel, UniversityModel
from ..db.session import session_scope
from ..errors import ExternalIdConflictError
from ..normalization import normalize_course_name, normalize_subject_name, normalize_university_name
from ..repositories import courses, external_sources, semesters, subjects, universities
from ..schemas import HierarchyImportResult

logger = logging.getLogger(__name__)


def normalize_and_store_university(
    session: Session,
    external_id: str,
    source_name: str,
    name: str,
    country: Optional[str] = None,
    type: Optional[str] = None,
    **extra: Any,
) -> UniversityModel:
    """Store a university, mapping it onto an existing canonical row when names match.

    ``extra`` carries optional columns such as ``state``, ``domain``,
    ``web_page``, ``alpha_code`` and ``provider``.
    """
    normalized_name = normalize_university_name(name)
    source = external_sources.find_or_create(session, source_name)

    existing = universities.find_by_external_id(session, source.id, external_id)
    if existing is not None:
        return existing

    canonical = universities.find_canonical_by_normalized_name(session, normalized_name)
    fields: Dict[str, Any] = {
        "external_id": external_id,
        "source_id": source.id,
        "name": name,
        "normalized_name": normalized_name,
        "country": country,
        "type": type,
        **{key: value for key, value in extra.items() if value is not None},
    }
    if canonical is not None:
        logger.debug("University %r from %s maps to canonical %s", name, source_name, canonical.id)
        return universities.create(session, is_canonical=False, canonical_id=canonical.id, **fields)
    return universities.create(session, is_canonical=True, **fields)


def normalize_and_store_course(
    session: Session,
    external_id: str,
    source_name: str,
    university_id: str,
    name: str,
    description: Optional[str] = None,
    duration: Optional[str] = None,
    total_semesters: Optional[int] = None,
) -> CourseModel:
    normalized_name = normalize_course_name(name)
    source = external_sources.find_or_create(session, source_name)

    existing = courses.find_by_external_id(session, source.id, external_id)
    if existing is not None:
        if existing.university_id != university_id:
            logger.warning(
                "Course %s from %s already belongs to university %s, not %s",
                external_id,
                source_name,
                existing.university_id,
                university_id,
            )
            raise ExternalIdConflictError(
                f"Course '{external_id}' from {source_name} is already stored for another university."
            )
        return existing

    fields: Dict[str, Any] = {
        "external_id": external_id,
        "source_id": source.id,
        "university_id": university_id,
        "name": name,
        "normalized_name": normalized_name,
        "description": description,
        "duration": duration,
        "total_semesters": total_semesters or 8,
    }
    canonical = courses.find_canonical_by_normalized_name(session, university_id, normalized_name)
    if canonical is not None:
        return courses.create(session, is_canonical=False, canonical_id=canonical.id, **fields)
    return courses.create(session, is_canonical=True, **fields)


def normalize_and_store_semester(
    session: Session,
    external_id: str,
    source_name: str,
    course_id: str,
    name: str,
    number: int,
) -> SemesterModel:
    source = external_sources.find_or_create(session, source_name)
    return semesters.upsert(
        session,
        course_id=course_id,
        source_id=source.id,
        external_id=external_id,
        name=name,
        number=number,
        position=number - 1,
    )


def normalize_and_store_subject(
    session: Session,
    external_id: str,
    source_name: str,
    semester_id: str,
    name: str,
    code: Optional[str] = None,
    credits: Optional[int] = None,
    marks: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> SubjectModel:
    source = external_sources.find_or_create(session, source_name)
    return subjects.upsert(
        session,
        semester_id=semester_id,
        source_id=source.id,
        external_id=external_id,
        name=name,
        normalized_name=normalize_subject_name(name),
        code=code,
        credits=credits or 0,
        marks=marks or 100,
        metadata=metadata,
    )


def normalize_and_store_hierarchy(
    source_name: str,
    university: Mapping[str, Any],
    course_tree: Iterable[Mapping[str, Any]],
) -> HierarchyImportResult:
    """Import a university with its courses, semesters and subjects in one transaction.

    ``course_tree`` items hold ``external_id``, ``name``, optional ``duration``
    and ``total_semesters`` and a ``semesters`` list; each semester holds
    ``external_id``, ``name``, ``number`` and a ``subjects`` list.
    """
    courses_created = 0
    subjects_created = 0
    with session_scope() as session:
        stored_university = normalize_and_store_university(
            session,
            university["external_id"],
            source_name,
            university["name"],
            university.get("country"),
            university.get("type"),
        )
        for course in course_tree:
            stored_course = normalize_and_store_course(
                session,
                course["external_id"],
                source_name,
                stored_university.id,
                course["name"],
                course.get("description"),
                course.get("duration"),
                course.get("total_semesters"),
            )
            courses_created += 1
            for semester in course.get("semesters", []):
                stored_semester = normalize_and_store_semester(
                    session,
                    semester["external_id"],
                    source_name,
                    stored_course.id,
                    semester["name"],
                    int(semester["number"]),
                )
                for subject in semester.get("subjects", []):
                    normalize_and_store_subject(
                        session,
                        subject["external_id"],
                        source_name,
                        stored_semester.id,
                        subject["name"],
                        subject.get("code"),
                        subject.get("credits"),
                        subject.get("marks"),
                        subject.get("metadata"),
                    )
                    subjects_created += 1
        university_id = stored_university.id

    logger.info(
        "Imported hierarchy for %s from %s: %d courses, %d subjects",
        university["name"],
        source_name,
        courses_created,
        subjects_created,
    )
    return HierarchyImportResult(
        university_id=university_id,
        courses_created=courses_created,
        subjects_created=subjects_created,
    )


__all__ = [
    "normalize_and_store_course",
    "normalize_and_store_hierarchy",
    "normalize_and_store_semester",
    "normalize_and_store_subject",
    "normalize_and_store_university",
]
