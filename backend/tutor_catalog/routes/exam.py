"""Cache-first exam catalog endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, Query

from ..schemas import CourseListResponse, SemesterListResponse, SubjectListResponse, UniversityListResponse
from ..services import catalog

router = APIRouter(prefix="/api/exam", tags=["exam"])


@router.get("/universities", response_model=UniversityListResponse)
def search_universities(
    search: str = Query(..., min_length=1, max_length=200),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> UniversityListResponse:
    return catalog.search_universities(search, user_id)


@router.get("/courses", response_model=CourseListResponse)
def list_courses(
    university: str = Query(..., min_length=1),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> CourseListResponse:
    return catalog.get_courses(university, user_id)


@router.get("/semesters", response_model=SemesterListResponse)
def list_semesters(
    university: str = Query(..., min_length=1),
    course: str = Query(..., min_length=1),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> SemesterListResponse:
    return catalog.get_semesters(university, course, user_id)


@router.get("/subjects", response_model=SubjectListResponse)
def list_subjects(
    university: str = Query(..., min_length=1),
    course: str = Query(..., min_length=1),
    semester: str = Query(..., min_length=1),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> SubjectListResponse:
    return catalog.get_subjects(university, course, semester, user_id)
