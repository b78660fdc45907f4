from __future__ import annotations

from pathlib import Path

import pytest

from tutor_catalog.db.session import session_scope
from tutor_catalog.errors import ExternalIdConflictError
from tutor_catalog.repositories import courses, semesters, subjects, universities
from tutor_catalog.services.normalization import (
    normalize_and_store_course,
    normalize_and_store_hierarchy,
    normalize_and_store_semester,
    normalize_and_store_subject,
    normalize_and_store_university,
)


def test_second_source_maps_onto_canonical_university(catalog_db: Path) -> None:
    with session_scope() as session:
        first = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi", "India")
        again = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi", "India")
        other = normalize_and_store_university(
            session,
            "hipolabs:university of delhi",
            "hipolabs",
            "University  of Delhi",
            "India",
            domain="du.ac.in",
            state=None,
        )

        assert again.id == first.id
        assert first.is_canonical is True
        assert other.is_canonical is False
        assert other.canonical_id == first.id
        assert other.domain == "du.ac.in"
        assert other.state is None
        assert universities.resolve_canonical(session, other).id == first.id
        assert [row.id for row in universities.search_by_name(session, "delhi")] == [first.id]


def test_course_dedup_is_scoped_to_university(catalog_db: Path) -> None:
    with session_scope() as session:
        delhi = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi")
        mumbai = normalize_and_store_university(session, "uni-2", "ExamDB", "University of Mumbai")

        btech = normalize_and_store_course(session, "course-1", "ExamDB", delhi.id, "B.Tech Computer Science")
        alias = normalize_and_store_course(
            session, "c-77", "OtherDB", delhi.id, "Bachelor of Technology Computer Science"
        )
        elsewhere = normalize_and_store_course(session, "course-9", "ExamDB", mumbai.id, "B.Tech Computer Science")

        assert btech.normalized_name == "btech cs"
        assert btech.total_semesters == 8
        assert alias.canonical_id == btech.id
        assert elsewhere.is_canonical is True
        assert [row.id for row in courses.find_by_university_id(session, delhi.id)] == [btech.id]


def test_semester_and_subject_upserts_update_in_place(catalog_db: Path) -> None:
    with session_scope() as session:
        uni = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi")
        course = normalize_and_store_course(session, "course-1", "ExamDB", uni.id, "B.Tech CS", total_semesters=6)
        semester = normalize_and_store_semester(session, "sem-3", "ExamDB", course.id, "Semester 3", 3)
        renamed = normalize_and_store_semester(session, "sem-3", "ExamDB", course.id, "Third Semester", 3)

        subject = normalize_and_store_subject(session, "sub-1", "ExamDB", semester.id, "Data Structures", "CS201")
        updated = normalize_and_store_subject(
            session, "sub-1", "ExamDB", semester.id, "Data Structures & Algorithms", "CS201", 4, 80
        )

        assert course.total_semesters == 6
        assert renamed.id == semester.id
        assert renamed.name == "Third Semester"
        assert renamed.position == 2
        assert updated.id == subject.id
        assert updated.credits == 4
        assert updated.marks == 80
        assert subject.normalized_name == "data structures & algorithms"


def test_subject_defaults(catalog_db: Path) -> None:
    with session_scope() as session:
        uni = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi")
        course = normalize_and_store_course(session, "course-1", "ExamDB", uni.id, "B.Tech CS")
        semester = normalize_and_store_semester(session, "sem-1", "ExamDB", course.id, "Semester 1", 1)
        subject = normalize_and_store_subject(session, "sub-9", "ExamDB", semester.id, "Physics Lab")

        assert subject.credits == 0
        assert subject.marks == 100
        assert subject.code is None


def test_hierarchy_import_stores_whole_tree(catalog_db: Path) -> None:
    result = normalize_and_store_hierarchy(
        "ExamDB",
        {"external_id": "uni-1", "name": "University of Delhi", "country": "India"},
        [
            {
                "external_id": "course-1",
                "name": "B.Tech Computer Science",
                "semesters": [
                    {
                        "external_id": "sem-1",
                        "name": "Semester 1",
                        "number": 1,
                        "subjects": [
                            {"external_id": "sub-1", "name": "Mathematics I", "code": "MA101", "credits": 4},
                            {"external_id": "sub-2", "name": "Physics", "code": "PH101"},
                        ],
                    },
                    {"external_id": "sem-2", "name": "Semester 2", "number": "2", "subjects": []},
                ],
            },
            {"external_id": "course-2", "name": "MBA"},
        ],
    )

    assert result.courses_created == 2
    assert result.subjects_created == 2
    with session_scope(commit=False) as session:
        stored = courses.find_by_university_id(session, result.university_id)
        assert [course.name for course in stored] == ["B.Tech Computer Science", "MBA"]
        semester_rows = semesters.find_by_course_id(session, stored[0].id)
        assert [row.number for row in semester_rows] == [1, 2]
        subject_rows = subjects.find_by_semester_id(session, semester_rows[0].id)
        assert [row.code for row in subject_rows] == ["MA101", "PH101"]


def test_course_external_id_owned_by_another_university_is_rejected(catalog_db: Path) -> None:
    with session_scope() as session:
        delhi = normalize_and_store_university(session, "uni-1", "ExamDB", "University of Delhi")
        mumbai = normalize_and_store_university(session, "uni-2", "ExamDB", "University of Mumbai")
        normalize_and_store_course(session, "course-1", "ExamDB", delhi.id, "MBA")

        with pytest.raises(ExternalIdConflictError):
            normalize_and_store_course(session, "course-1", "ExamDB", mumbai.id, "MBA")
        assert courses.find_by_university_id(session, mumbai.id) == []
