from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from tutor_catalog.db.base import utcnow
from tutor_catalog.db.models import EntityType, SearchLogModel
from tutor_catalog.db.session import session_scope
from tutor_catalog.repositories import search_logs
from tutor_catalog.services import analytics


def _log(query: str, entity_type: EntityType, *, cache_hit: bool, latency_ms: int, user_id: str | None = None) -> None:
    with session_scope() as session:
        search_logs.create(
            session,
            user_id=user_id,
            raw_query=query.title(),
            normalized_query=query,
            entity_type=entity_type,
            cache_hit=cache_hit,
            result_count=3,
            latency_ms=latency_ms,
        )


@pytest.fixture
def seeded_logs(catalog_db: Path) -> Path:
    _log("delhi", EntityType.UNIVERSITY, cache_hit=False, latency_ms=1500, user_id="learner-1")
    _log("delhi", EntityType.UNIVERSITY, cache_hit=True, latency_ms=10, user_id="learner-1")
    _log("anna", EntityType.UNIVERSITY, cache_hit=True, latency_ms=20)
    _log("uni:1", EntityType.COURSE, cache_hit=False, latency_ms=70, user_id="learner-2")
    with session_scope() as session:
        session.add(
            SearchLogModel(
                raw_query="Old",
                normalized_query="old",
                entity_type=EntityType.UNIVERSITY,
                cache_hit=False,
                result_count=0,
                latency_ms=5000,
                created_at=utcnow() - timedelta(days=60),
            )
        )
    return catalog_db


def test_search_stats_summarise_window(seeded_logs: Path) -> None:
    stats = analytics.search_stats(days=30)

    assert stats.total_searches == 4
    assert stats.cache_hit_rate == pytest.approx(0.5)
    assert stats.average_latency_ms == pytest.approx(400.0)
    assert [(item.query, item.count) for item in stats.top_queries] == [("delhi", 2), ("anna", 1), ("uni:1", 1)]
    assert stats.by_entity_type["UNIVERSITY"].count == 3
    assert stats.by_entity_type["UNIVERSITY"].cache_hit_rate == pytest.approx(2 / 3)
    assert stats.by_entity_type["COURSE"].cache_hit_rate == 0.0


def test_empty_log_reports_zeroes(catalog_db: Path) -> None:
    stats = analytics.search_stats()

    assert stats.total_searches == 0
    assert stats.cache_hit_rate == 0.0
    assert stats.top_queries == []
    assert stats.by_entity_type == {}


def test_popular_searches_filter_by_entity_type(seeded_logs: Path) -> None:
    universities = analytics.popular_searches(EntityType.UNIVERSITY, days=7)
    assert [(item.query, item.count) for item in universities] == [("delhi", 2), ("anna", 1)]

    assert [item.query for item in analytics.popular_searches(EntityType.COURSE)] == ["uni:1"]
    assert len(analytics.popular_searches(limit=1)) == 1


def test_user_history_and_slow_queries(seeded_logs: Path) -> None:
    history = analytics.user_search_history("learner-1")
    assert [entry.query for entry in history] == ["Delhi", "Delhi"]
    assert {entry.cache_hit for entry in history} == {True, False}
    assert analytics.user_search_history("nobody") == []

    slow = analytics.slow_queries()
    assert [(entry.query, entry.latency_ms) for entry in slow] == [("Old", 5000), ("Delhi", 1500)]
    assert [entry.latency_ms for entry in analytics.slow_queries(threshold_ms=50)][-1] == 70

