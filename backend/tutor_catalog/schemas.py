"""Pydantic payloads exchanged between services and routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _FromRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UniversityDTO(_FromRow):
    """University as served by the provider-backed search endpoint."""

    id: str
    name: str
    country: Optional[str] = None
    state: Optional[str] = None
    domain: Optional[str] = None
    web_page: Optional[str] = None
    alpha_code: Optional[str] = None
    provider: str = "unknown"


class UniversityResult(_FromRow):
    id: str
    name: str
    country: Optional[str] = None
    type: Optional[str] = None


class CourseResult(_FromRow):
    id: str
    name: str
    description: Optional[str] = None
    duration: Optional[str] = None
    total_semesters: int = 8


class SemesterResult(_FromRow):
    id: str
    name: str
    number: int


class SubjectResult(_FromRow):
    id: str
    name: str
    code: Optional[str] = None
    credits: int = 0
    marks: int = 100


class SearchMeta(BaseModel):
    cache_hit: bool
    latency_ms: int


class UniversityListResponse(BaseModel):
    universities: List[UniversityResult]
    meta: SearchMeta


class CourseListResponse(BaseModel):
    courses: List[CourseResult]
    meta: SearchMeta


class SemesterListResponse(BaseModel):
    semesters: List[SemesterResult]
    meta: SearchMeta


class SubjectListResponse(BaseModel):
    subjects: List[SubjectResult]
    meta: SearchMeta


class ProviderSearchMeta(BaseModel):
    cache_hit: bool
    provider: Optional[str] = None
    latency_ms: int
    total_results: int
    query: str


class ProviderSearchResponse(BaseModel):
    success: bool = True
    data: List[UniversityDTO]
    meta: ProviderSearchMeta


class UniversityDetailResponse(BaseModel):
    success: bool = True
    data: UniversityDTO


class ProviderHealth(BaseModel):
    provider: str
    available: bool


class EntityTypeCount(BaseModel):
    entity_type: str
    count: int


class CacheTableStats(BaseModel):
    total: int
    expired: int
    by_entity_type: List[EntityTypeCount] = Field(default_factory=list)


class CacheStats(BaseModel):
    l1_available: bool
    l1_entries: int
    l2_stats: CacheTableStats


class QueryCount(BaseModel):
    query: str
    count: int


class EntityTypeSearchStats(BaseModel):
    count: int
    cache_hit_rate: float


class SearchStats(BaseModel):
    total_searches: int
    cache_hit_rate: float
    average_latency_ms: float
    top_queries: List[QueryCount] = Field(default_factory=list)
    by_entity_type: dict[str, EntityTypeSearchStats] = Field(default_factory=dict)


class SearchHistoryEntry(BaseModel):
    query: str
    entity_type: str
    result_count: int
    cache_hit: bool
    searched_at: datetime


class SlowQuery(BaseModel):
    query: str
    entity_type: str
    latency_ms: int
    cache_hit: bool
    occurred_at: datetime


class FreshnessStatus(BaseModel):
    entity_type: str
    entity_id: str
    last_refreshed_at: Optional[datetime] = None
    needs_refresh: bool
    hours_stale: Optional[float] = None


class RefreshTypeStats(BaseModel):
    total: int
    stale: int
    fresh: int


class RefreshStats(BaseModel):
    by_type: dict[str, RefreshTypeStats] = Field(default_factory=dict)
    total_entities: int = 0
    total_stale: int = 0


class RefreshJobResult(BaseModel):
    processed: int = 0
    refreshed: int = 0
    errors: int = 0


class CacheRebuildResult(BaseModel):
    expired_cleaned: int = 0
    prewarmed: int = 0
    errors: int = 0


class RefreshOutcome(BaseModel):
    entity_type: str
    entity_id: str
    success: bool
    has_changes: bool = False
    error: Optional[str] = None


class HierarchyImportResult(BaseModel):
    university_id: str
    courses_created: int
    subjects_created: int


class RateLimitStatus(BaseModel):
    remaining: int
    total: int
    resets_at: datetime


def dump_rows(model: type[BaseModel], rows: List[Any]) -> List[Any]:
    return [model.model_validate(row) for row in rows]


__all__ = [
    "CacheRebuildResult",
    "CacheStats",
    "CacheTableStats",
    "CourseListResponse",
    "CourseResult",
    "EntityTypeCount",
    "EntityTypeSearchStats",
    "FreshnessStatus",
    "HierarchyImportResult",
    "ProviderHealth",
    "ProviderSearchMeta",
    "ProviderSearchResponse",
    "QueryCount",
    "RateLimitStatus",
    "RefreshJobResult",
    "RefreshOutcome",
    "RefreshStats",
    "RefreshTypeStats",
    "SearchHistoryEntry",
    "SearchMeta",
    "SearchStats",
    "SemesterListResponse",
    "SemesterResult",
    "SlowQuery",
    "SubjectListResponse",
    "SubjectResult",
    "UniversityDTO",
    "UniversityDetailResponse",
    "UniversityListResponse",
    "UniversityResult",
    "dump_rows",
]
