from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import func, select

from tutor_catalog.cache import search_result_cache
from tutor_catalog.db.models import EntityType, SearchLogModel
from tutor_catalog.db.session import session_scope
from tutor_catalog.errors import CatalogNotFoundError, InvalidQueryError
from tutor_catalog.repositories import courses, search_cache
from tutor_catalog.services import catalog
from tutor_catalog.services.cache import set_cached_search


def _delhi_id() -> str:
    response = catalog.search_universities("Delhi", log=False)
    return next(item.id for item in response.universities if item.name == "University of Delhi")


def test_university_search_moves_from_api_to_l1_to_l2(catalog_db: Path) -> None:
    first = catalog.search_universities("Delhi", user_id="learner-1")
    assert first.meta.cache_hit is False
    assert [item.name for item in first.universities] == ["University of Delhi", "IIT Delhi"]

    second = catalog.search_universities("  delhi!", user_id="learner-1")
    assert second.meta.cache_hit is True
    assert [item.id for item in second.universities] == [item.id for item in first.universities]

    search_result_cache.clear()
    third = catalog.search_universities("DELHI")
    assert third.meta.cache_hit is True

    with session_scope(commit=False) as session:
        entry = search_cache.find(session, "delhi", EntityType.UNIVERSITY)
        assert entry is not None
        assert entry.hit_count == 1
        assert entry.result_count == 2
        logged = session.execute(
            select(SearchLogModel.cache_hit).order_by(SearchLogModel.created_at.asc())
        ).scalars().all()
    assert logged == [False, True, True]


def test_blank_query_is_rejected(catalog_db: Path) -> None:
    with pytest.raises(InvalidQueryError):
        catalog.search_universities("  ?! ")


def test_empty_results_are_not_cached(catalog_db: Path) -> None:
    assert catalog.search_universities("zzzz").universities == []
    again = catalog.search_universities("zzzz")

    assert again.meta.cache_hit is False
    with session_scope(commit=False) as session:
        assert search_cache.find(session, "zzzz", EntityType.UNIVERSITY) is None


def test_course_semester_subject_listing(catalog_db: Path) -> None:
    university_id = _delhi_id()

    course_list = catalog.get_courses(university_id, user_id="learner-2")
    assert course_list.meta.cache_hit is False
    assert len(course_list.courses) == 6
    assert course_list.courses[0].name == "B.Tech Computer Science"
    assert catalog.get_courses(university_id).meta.cache_hit is True

    course_id = course_list.courses[0].id
    semester_list = catalog.get_semesters(university_id, course_id)
    assert [item.number for item in semester_list.semesters] == list(range(1, 9))

    semester_id = semester_list.semesters[0].id
    subject_list = catalog.get_subjects(university_id, course_id, semester_id)
    assert len(subject_list.subjects) == 8
    assert {item.code for item in subject_list.subjects} >= {"CS201", "CS302"}

    with session_scope(commit=False) as session:
        counts = dict(
            session.execute(
                select(SearchLogModel.entity_type, func.count(SearchLogModel.id)).group_by(
                    SearchLogModel.entity_type
                )
            ).all()
        )
        history = session.execute(
            select(SearchLogModel.raw_query).where(SearchLogModel.user_id == "learner-2")
        ).scalars().all()
    assert counts == {EntityType.COURSE: 2, EntityType.SEMESTER: 1, EntityType.SUBJECT: 1}
    assert history == [catalog.university_courses_key(university_id)]


def test_listing_reads_stored_rows_before_the_api(catalog_db: Path) -> None:
    university_id = _delhi_id()
    catalog.get_courses(university_id)

    with session_scope() as session:
        search_cache.delete(session, catalog.university_courses_key(university_id), EntityType.COURSE)
    search_result_cache.clear()

    class FailingClient:
        source_name = "ExamDB"

        def get_courses(self, university_external_id: str) -> list:
            raise AssertionError("stored courses should be served without calling the API")

    response = catalog.get_courses(university_id, client=FailingClient())  # type: ignore[arg-type]
    assert response.meta.cache_hit is False
    assert len(response.courses) == 6


def test_missing_parents_raise_not_found(catalog_db: Path) -> None:
    with pytest.raises(CatalogNotFoundError):
        catalog.get_courses("no-such-university")

    university_id = _delhi_id()
    with pytest.raises(CatalogNotFoundError) as excinfo:
        catalog.get_semesters(university_id, "no-such-course")
    assert excinfo.value.entity == "Course"


def test_unresolvable_cached_ids_are_dropped(catalog_db: Path) -> None:
    university_id = _delhi_id()
    key = catalog.university_courses_key(university_id)
    with session_scope() as session:
        set_cached_search(session, key, EntityType.COURSE, ["deleted-course-id"])

    response = catalog.get_courses(university_id)

    assert response.meta.cache_hit is False
    assert len(response.courses) == 6
    with session_scope(commit=False) as session:
        entry = search_cache.find(session, key, EntityType.COURSE)
        assert entry is not None
        assert "deleted-course-id" not in entry.result_ids


def test_each_university_gets_its_own_courses(catalog_db: Path) -> None:
    ids = {item.name: item.id for item in catalog.search_universities("Delhi", log=False).universities}
    delhi, iit = ids["University of Delhi"], ids["IIT Delhi"]

    delhi_courses = catalog.get_courses(delhi).courses
    iit_courses = catalog.get_courses(iit).courses

    assert len(iit_courses) == 6
    assert not {item.id for item in delhi_courses} & {item.id for item in iit_courses}
    with session_scope(commit=False) as session:
        owners = {row.university_id for row in courses.find_by_ids(session, [item.id for item in iit_courses])}
    assert owners == {iit}
