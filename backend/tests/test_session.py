from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import delete, text
from sqlalchemy.exc import IntegrityError

from tutor_catalog.db.models import UniversityModel
from tutor_catalog.db.session import get_engine, session_scope
from tutor_catalog.repositories import courses, external_sources, semesters, universities


def test_sqlite_connections_enforce_foreign_keys(catalog_db: Path) -> None:
    with get_engine().connect() as connection:
        assert connection.execute(text("PRAGMA foreign_keys")).scalar_one() == 1

    with pytest.raises(IntegrityError):
        with session_scope() as session:
            source = external_sources.find_or_create(session, "ExamDB")
            courses.upsert(
                session, source_id=source.id, external_id="c-1", university_id="missing", name="MBA",
                normalized_name="mba",
            )


def test_deleting_a_university_removes_its_catalog(catalog_db: Path) -> None:
    with session_scope() as session:
        source = external_sources.find_or_create(session, "ExamDB")
        uni = universities.create(session, source_id=source.id, external_id="u-1", name="IIT Delhi", normalized_name="iit delhi")
        course = courses.upsert(
            session, source_id=source.id, external_id="c-1", university_id=uni.id, name="MBA", normalized_name="mba"
        )
        semester = semesters.upsert(
            session, course_id=course.id, source_id=source.id, external_id="s-1", name="Semester 1", number=1
        )

    with session_scope() as session:
        session.execute(delete(UniversityModel).where(UniversityModel.id == uni.id))

    with session_scope(commit=False) as session:
        assert courses.find_by_ids(session, [course.id]) == []
        assert semesters.find_by_course_and_number(session, course.id, 1) is None
        assert semesters.find_by_ids(session, [semester.id]) == []
