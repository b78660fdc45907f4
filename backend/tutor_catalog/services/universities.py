"""Provider-backed university search.

Stored universities answer first. Only when nothing matches is the provider
called; its results are validated, stored through the canonical dedup rule
and then read back so callers always receive stored rows.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from ..config import get_settings
from ..db.models import EntityType
from ..db.session import session_scope
from ..errors import CatalogNotFoundError, InvalidQueryError
from ..normalization import normalize_university_name
from ..providers import NormalizedUniversity, UniversityProvider, is_valid_normalized, provider_registry
from ..repositories import external_sources, universities
from ..schemas import ProviderSearchMeta, ProviderSearchResponse, UniversityDTO, dump_rows
from ..telemetry import emit_event
from .catalog import SEARCH_COMPLETED_EVENT
from .normalization import normalize_and_store_university

logger = logging.getLogger(__name__)


def _find_stored(normalized_query: str, limit: int) -> List[UniversityDTO]:
    with session_scope(commit=False) as session:
        rows = universities.search_by_name(session, normalized_query, limit)
        return dump_rows(UniversityDTO, rows)


def persist_provider_results(provider: UniversityProvider, results: List[NormalizedUniversity]) -> int:
    """Store provider results; failures are logged and reported as zero stored."""
    try:
        with session_scope() as session:
            external_sources.find_or_create(session, provider.name, provider.endpoint)
            for university in results:
                normalize_and_store_university(
                    session,
                    f"{university.provider}:{university.normalized_name}",
                    provider.name,
                    university.name,
                    university.country,
                    None,
                    state=university.state,
                    domain=university.domain,
                    web_page=university.web_page,
                    alpha_code=university.alpha_code,
                    provider=university.provider,
                )
            external_sources.update_last_sync(session, provider.name)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to persist %d universities from %s", len(results), provider.name)
        return 0
    return len(results)


def search_universities(
    query: str,
    provider: Optional[str] = None,
    limit: int = 20,
    user_id: Optional[str] = None,
) -> ProviderSearchResponse:
    started = perf_counter()
    normalized_query = normalize_university_name(query)
    if not normalized_query:
        raise InvalidQueryError('Query parameter "q" is required.')
    source = provider_registry.resolve(provider)

    stored = _find_stored(normalized_query, limit)
    cache_hit = bool(stored)
    provider_name: Optional[str] = None
    if not cache_hit:
        provider_name = source.name
        results = source.search(query)
        valid = [item for item in results if is_valid_normalized(item)][: get_settings().max_persisted_results]
        if valid:
            persist_provider_results(source, valid)
            stored = _find_stored(normalized_query, limit)

    latency_ms = int((perf_counter() - started) * 1000)
    emit_event(
        SEARCH_COMPLETED_EVENT,
        user_id=user_id,
        raw_query=query,
        normalized_query=normalized_query,
        entity_type=EntityType.UNIVERSITY,
        cache_hit=cache_hit,
        result_count=len(stored),
        latency_ms=latency_ms,
    )
    return ProviderSearchResponse(
        data=stored,
        meta=ProviderSearchMeta(
            cache_hit=cache_hit,
            provider=provider_name,
            latency_ms=latency_ms,
            total_results=len(stored),
            query=query,
        ),
    )


def get_university(university_id: str) -> UniversityDTO:
    with session_scope(commit=False) as session:
        row = universities.find_by_id(session, university_id)
        if row is None:
            raise CatalogNotFoundError("University", university_id)
        return UniversityDTO.model_validate(row)


def check_provider_health(name: Optional[str] = None) -> bool:
    try:
        return bool(provider_registry.resolve(name).is_available())
    except Exception:  # noqa: BLE001
        logger.warning("Health check failed for provider %s", name, exc_info=True)
        return False


__all__ = [
    "check_provider_health",
    "get_university",
    "persist_provider_results",
    "search_universities",
]
