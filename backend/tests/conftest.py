from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from tutor_catalog import telemetry_pipeline  # noqa: F401  installs the search log listener
from tutor_catalog.cache import search_result_cache
from tutor_catalog.config import get_settings
from tutor_catalog.db.session import dispose_engine, init_db
from tutor_catalog.exam_api import get_exam_api_client


def _reset_state() -> None:
    get_settings.cache_clear()
    get_exam_api_client.cache_clear()
    dispose_engine()
    search_result_cache.clear()


@pytest.fixture
def catalog_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the catalog at a fresh sqlite file with all tables created."""
    db_path = tmp_path / "catalog.db"
    monkeypatch.setenv("TUTOR_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.delenv("TUTOR_EXAM_API_KEY", raising=False)
    _reset_state()
    init_db()
    yield db_path
    _reset_state()
