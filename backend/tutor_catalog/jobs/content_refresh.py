"""Batch refresh of stale catalog entities."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import get_settings
from ..db.models import EntityType
from ..exam_api import ExamAPIClient
from ..schemas import RefreshJobResult
from ..services.refresh import refresh_entity, stale_entities

logger = logging.getLogger(__name__)

JOB_NAME = "content-refresh"

# Parents before children.
_REFRESH_ORDER = (EntityType.UNIVERSITY, EntityType.COURSE, EntityType.SEMESTER, EntityType.SUBJECT)


def process_content_refresh(
    entity_type: Optional[EntityType] = None,
    limit: Optional[int] = None,
    *,
    client: Optional[ExamAPIClient] = None,
) -> RefreshJobResult:
    """Refresh up to ``limit`` stale entities per type."""
    batch = limit if limit is not None else get_settings().refresh_batch_size
    types = (entity_type,) if entity_type is not None else _REFRESH_ORDER
    result = RefreshJobResult()

    for current in types:
        try:
            candidates = stale_entities(current, limit=batch)
        except Exception:  # noqa: BLE001
            logger.exception("Could not list stale %s entities", current.value)
            result.errors += 1
            continue
        for candidate in candidates:
            result.processed += 1
            try:
                outcome = refresh_entity(current, candidate.entity_id, client=client)
            except Exception:  # noqa: BLE001
                logger.exception("Refresh of %s %s aborted", current.value, candidate.entity_id)
                result.errors += 1
                continue
            if outcome.success:
                result.refreshed += 1
            else:
                result.errors += 1

    logger.info(
        "Content refresh job completed: processed=%d refreshed=%d errors=%d",
        result.processed,
        result.refreshed,
        result.errors,
    )
    return result


__all__ = ["JOB_NAME", "process_content_refresh"]
