"""Session-scoped data access for the catalog tables."""

from .content_refresh import ContentRefreshRepository, content_refresh
from .courses import CourseRepository, courses
from .external_sources import ExternalSourceRepository, external_sources
from .search_cache import SearchCacheRepository, search_cache
from .search_logs import SearchLogRepository, search_logs
from .semesters import SemesterRepository, semesters
from .subjects import SubjectRepository, subjects
from .universities import UniversityRepository, universities

__all__ = [
    "ContentRefreshRepository",
    "CourseRepository",
    "ExternalSourceRepository",
    "SearchCacheRepository",
    "SearchLogRepository",
    "SemesterRepository",
    "SubjectRepository",
    "UniversityRepository",
    "content_refresh",
    "courses",
    "external_sources",
    "search_cache",
    "search_logs",
    "semesters",
    "subjects",
    "universities",
]
