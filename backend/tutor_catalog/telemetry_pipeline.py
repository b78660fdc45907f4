"""Telemetry listener that persists completed searches for analytics."""

from __future__ import annotations

import logging
from typing import Set

from .db.models import EntityType
from .db.session import session_scope
from .repositories import search_logs
from .telemetry import TelemetryEvent, register_listener

logger = logging.getLogger(__name__)

_MONITORED_EVENTS: Set[str] = {"catalog_search_completed"}


def _persist_search(event: TelemetryEvent) -> None:
    if event.name not in _MONITORED_EVENTS:
        return
    payload = event.payload
    raw_query = payload.get("raw_query")
    if not isinstance(raw_query, str):
        return
    try:
        with session_scope() as session:
            search_logs.create(
                session,
                user_id=payload.get("user_id"),
                raw_query=raw_query,
                normalized_query=str(payload.get("normalized_query") or raw_query),
                entity_type=EntityType(payload["entity_type"]),
                cache_hit=bool(payload.get("cache_hit")),
                result_count=int(payload.get("result_count") or 0),
                latency_ms=int(payload.get("latency_ms") or 0),
            )
    except Exception:  # noqa: BLE001
        logger.exception("Failed to persist search log for query=%r", raw_query)


def install() -> None:
    register_listener(_persist_search)


install()

__all__ = ["_MONITORED_EVENTS", "install"]
