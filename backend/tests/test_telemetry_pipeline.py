from __future__ import annotations

from pathlib import Path

from sqlalchemy import select

from tutor_catalog.db.models import EntityType, SearchLogModel
from tutor_catalog.db.session import session_scope
from tutor_catalog.telemetry import emit_event
from tutor_catalog.telemetry_pipeline import _MONITORED_EVENTS, install


def test_search_completed_events_persist(catalog_db: Path) -> None:
    install()
    assert "catalog_search_completed" in _MONITORED_EVENTS

    emit_event(
        "catalog_search_completed",
        user_id="learner-9",
        raw_query="IIT Delhi",
        normalized_query="iit delhi",
        entity_type=EntityType.UNIVERSITY,
        cache_hit=False,
        result_count=1,
        latency_ms=42,
    )

    with session_scope(commit=False) as session:
        rows = session.execute(select(SearchLogModel)).scalars().all()
        assert len(rows) == 1
        assert rows[0].user_id == "learner-9"
        assert rows[0].entity_type is EntityType.UNIVERSITY
        assert rows[0].latency_ms == 42


def test_unrelated_and_malformed_events_are_ignored(catalog_db: Path) -> None:
    emit_event("db_pool_status", connects=1)
    emit_event("catalog_search_completed", raw_query=None, entity_type="UNIVERSITY")
    emit_event("catalog_search_completed", raw_query="x", entity_type="NOT_A_TYPE")

    with session_scope(commit=False) as session:
        assert session.execute(select(SearchLogModel)).scalars().all() == []
