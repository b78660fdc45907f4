"""Client for the external exam catalog API.

Every call to the upstream catalog goes through :class:`ExamAPIClient`, which
owns authentication, the hourly request budget, retries and the built-in mock
catalog used when no API key is configured.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import Settings, get_settings
from .errors import ExternalAPIError, RateLimitExceededError
from .schemas import RateLimitStatus

logger = logging.getLogger(__name__)

_PLACEHOLDER_KEYS = {"", "your-exam-api-key"}

RecordT = TypeVar("RecordT", bound=BaseModel)


class _ExternalRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str


class ExternalUniversity(_ExternalRecord):
    country: Optional[str] = None
    type: Optional[str] = None


class ExternalCourse(_ExternalRecord):
    description: Optional[str] = None
    duration: Optional[str] = None
    total_semesters: Optional[int] = Field(default=None, alias="totalSemesters")


class ExternalSemester(_ExternalRecord):
    number: int


class ExternalSubject(_ExternalRecord):
    code: Optional[str] = None
    credits: Optional[int] = None
    marks: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class HourlyRateLimiter:
    """Fixed one-hour request window shared by every call in the process."""

    def __init__(self, max_per_hour: int, clock: Callable[[], datetime] | None = None) -> None:
        self.max_per_hour = max_per_hour
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = RLock()
        self._count = 0
        self._window_started = self._clock()

    def _roll_window(self, now: datetime) -> None:
        if now - self._window_started >= timedelta(hours=1):
            self._count = 0
            self._window_started = now

    def acquire(self) -> bool:
        with self._lock:
            self._roll_window(self._clock())
            if self._count >= self.max_per_hour:
                return False
            self._count += 1
            return True

    def status(self) -> RateLimitStatus:
        with self._lock:
            self._roll_window(self._clock())
            return RateLimitStatus(
                remaining=max(self.max_per_hour - self._count, 0),
                total=self.max_per_hour,
                resets_at=self._window_started + timedelta(hours=1),
            )


class ExamAPIClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        rate_limiter: Optional[HourlyRateLimiter] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.endpoint = self.settings.exam_api_endpoint.rstrip("/")
        self._client = client
        self._sleep = sleep
        self.rate_limiter = rate_limiter or HourlyRateLimiter(self.settings.exam_api_rate_limit_per_hour)

    @property
    def source_name(self) -> str:
        return self.settings.exam_api_source_name

    @property
    def configured(self) -> bool:
        key = self.settings.exam_api_key
        return key is not None and key.strip() not in _PLACEHOLDER_KEYS

    def _request(self, path: str, params: Mapping[str, str]) -> Dict[str, Any]:
        if not self.rate_limiter.acquire():
            raise RateLimitExceededError("Rate limit exceeded. Please try again later.")

        settings = self.settings
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {settings.exam_api_key}",
        }
        local_client = self._client or httpx.Client(timeout=settings.exam_api_timeout_seconds)
        close_client = self._client is None
        last_error: Optional[Exception] = None
        try:
            for attempt in range(1, settings.exam_api_max_retries + 1):
                try:
                    response = local_client.get(
                        f"{self.endpoint}{path}",
                        params=dict(params),
                        headers=headers,
                        timeout=settings.exam_api_timeout_seconds,
                    )
                    response.raise_for_status()
                    payload = response.json()
                except httpx.HTTPStatusError as exc:
                    if 400 <= exc.response.status_code < 500:
                        raise ExternalAPIError(
                            f"Exam API rejected {path} with HTTP {exc.response.status_code}"
                        ) from exc
                    last_error = exc
                except (httpx.HTTPError, ValueError) as exc:
                    last_error = exc
                else:
                    if not isinstance(payload, dict):
                        raise ExternalAPIError(f"Exam API returned an unexpected payload for {path}")
                    return payload

                if attempt < settings.exam_api_max_retries:
                    delay = settings.exam_api_backoff_seconds * (2**attempt)
                    logger.warning(
                        "Exam API request %s failed (attempt %d/%d), retrying in %.1fs",
                        path,
                        attempt,
                        settings.exam_api_max_retries,
                        delay,
                    )
                    self._sleep(delay)
        finally:
            if close_client:
                local_client.close()

        raise ExternalAPIError(f"Exam API request {path} failed after retries: {last_error}") from last_error

    def _fetch(
        self,
        path: str,
        params: Mapping[str, str],
        key: str,
        record: Type[RecordT],
        fallback: Callable[[], List[Dict[str, Any]]],
    ) -> List[RecordT]:
        if not self.configured:
            return [record.model_validate(item) for item in fallback()]
        try:
            payload = self._request(path, params)
            return [record.model_validate(item) for item in payload.get(key) or []]
        except RateLimitExceededError:
            raise
        except (ExternalAPIError, ValidationError) as exc:
            if not self.settings.exam_api_mock_fallback:
                if isinstance(exc, ValidationError):
                    raise ExternalAPIError(f"Exam API returned invalid {key}: {exc}") from exc
                raise
            logger.error("Falling back to mock %s after exam API failure: %s", key, exc)
            return [record.model_validate(item) for item in fallback()]

    def search_universities(self, query: str) -> List[ExternalUniversity]:
        return self._fetch(
            "/universities",
            {"search": query},
            "universities",
            ExternalUniversity,
            lambda: mock_universities(query),
        )

    def get_courses(self, university_external_id: str) -> List[ExternalCourse]:
        return self._fetch(
            "/courses",
            {"university": university_external_id},
            "courses",
            ExternalCourse,
            lambda: mock_courses(university_external_id),
        )

    def get_semesters(self, university_external_id: str, course_external_id: str) -> List[ExternalSemester]:
        return self._fetch(
            "/semesters",
            {"university": university_external_id, "course": course_external_id},
            "semesters",
            ExternalSemester,
            mock_semesters,
        )

    def get_subjects(
        self,
        university_external_id: str,
        course_external_id: str,
        semester_external_id: str,
    ) -> List[ExternalSubject]:
        return self._fetch(
            "/subjects",
            {
                "university": university_external_id,
                "course": course_external_id,
                "semester": semester_external_id,
            },
            "subjects",
            ExternalSubject,
            mock_subjects,
        )

    def rate_limit_status(self) -> RateLimitStatus:
        return self.rate_limiter.status()


@lru_cache
def get_exam_api_client() -> ExamAPIClient:
    return ExamAPIClient()


# Built-in catalog served when no API key is configured or the API is down.

_MOCK_UNIVERSITIES: List[Dict[str, Any]] = [
    {"id": "uni-1", "name": "University of Delhi", "type": "Central University", "country": "India"},
    {"id": "uni-2", "name": "Mumbai University", "type": "State University", "country": "India"},
    {"id": "uni-3", "name": "Anna University", "type": "State University", "country": "India"},
    {"id": "uni-4", "name": "IIT Bombay", "type": "Institute of National Importance", "country": "India"},
    {"id": "uni-5", "name": "Bangalore University", "type": "State University", "country": "India"},
    {"id": "uni-6", "name": "Jawaharlal Nehru University", "type": "Central University", "country": "India"},
    {"id": "uni-7", "name": "IIT Delhi", "type": "Institute of National Importance", "country": "India"},
    {"id": "uni-8", "name": "BITS Pilani", "type": "Private University", "country": "India"},
]

_MOCK_COURSES: List[Dict[str, Any]] = [
    {"id": "course-1", "name": "B.Tech Computer Science", "duration": "4 years", "total_semesters": 8},
    {"id": "course-2", "name": "B.Tech Mechanical Engineering", "duration": "4 years", "total_semesters": 8},
    {"id": "course-3", "name": "MBA", "duration": "2 years", "total_semesters": 4},
    {"id": "course-4", "name": "B.Sc Physics", "duration": "3 years", "total_semesters": 6},
    {"id": "course-5", "name": "M.Tech Data Science", "duration": "2 years", "total_semesters": 4},
    {"id": "course-6", "name": "B.Com Honours", "duration": "3 years", "total_semesters": 6},
]

_MOCK_SUBJECTS: List[Dict[str, Any]] = [
    {"id": "sub-1", "name": "Data Structures", "code": "CS201", "credits": 4, "marks": 100},
    {"id": "sub-2", "name": "Algorithms", "code": "CS202", "credits": 4, "marks": 100},
    {"id": "sub-3", "name": "Database Management", "code": "CS203", "credits": 3, "marks": 100},
    {"id": "sub-4", "name": "Operating Systems", "code": "CS204", "credits": 4, "marks": 100},
    {"id": "sub-5", "name": "Computer Networks", "code": "CS205", "credits": 3, "marks": 100},
    {"id": "sub-6", "name": "Software Engineering", "code": "CS206", "credits": 3, "marks": 100},
    {"id": "sub-7", "name": "Machine Learning", "code": "CS301", "credits": 4, "marks": 100},
    {"id": "sub-8", "name": "Artificial Intelligence", "code": "CS302", "credits": 4, "marks": 100},
]


def mock_universities(query: str) -> List[Dict[str, Any]]:
    needle = query.lower().strip()
    if not needle:
        return [dict(item) for item in _MOCK_UNIVERSITIES]
    return [dict(item) for item in _MOCK_UNIVERSITIES if needle in item["name"].lower()]


def mock_courses(university_external_id: str) -> List[Dict[str, Any]]:
    # Course ids are only unique per source, so each university gets its own.
    return [{**item, "id": f"{university_external_id}:{item['id']}"} for item in _MOCK_COURSES]


def mock_semesters() -> List[Dict[str, Any]]:
    return [{"id": f"sem-{number}", "name": f"Semester {number}", "number": number} for number in range(1, 9)]


def mock_subjects() -> List[Dict[str, Any]]:
    return [dict(item) for item in _MOCK_SUBJECTS]


__all__ = [
    "ExamAPIClient",
    "ExternalCourse",
    "ExternalSemester",
    "ExternalSubject",
    "ExternalUniversity",
    "HourlyRateLimiter",
    "get_exam_api_client",
]
