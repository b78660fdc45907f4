"""Provider-backed university search endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, Query

from ..schemas import ProviderHealth, ProviderSearchResponse, UniversityDetailResponse
from ..services import universities as university_service

router = APIRouter(prefix="/api/universities", tags=["universities"])


@router.get("/search", response_model=ProviderSearchResponse)
def search_universities(
    q: str = Query(default="", max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    provider: Optional[str] = Query(default=None),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> ProviderSearchResponse:
    return university_service.search_universities(q, provider=provider, limit=limit, user_id=user_id)


@router.get("/health/{provider}", response_model=ProviderHealth)
def provider_health(provider: str) -> ProviderHealth:
    return ProviderHealth(provider=provider, available=university_service.check_provider_health(provider))


@router.get("/{university_id}", response_model=UniversityDetailResponse)
def get_university(university_id: str) -> UniversityDetailResponse:
    return UniversityDetailResponse(data=university_service.get_university(university_id))
