from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts import run_jobs
from tutor_catalog.db.models import EntityType
from tutor_catalog.db.session import session_scope
from tutor_catalog.repositories import search_cache


def test_parse_refresh_arguments() -> None:
    args = run_jobs.parse_args(["refresh", "--entity-type", "course", "--limit", "5"])
    assert args.command == "refresh"
    assert args.entity_type is EntityType.COURSE
    assert args.limit == 5


def test_unknown_command_exits() -> None:
    with pytest.raises(SystemExit):
        run_jobs.parse_args(["vacuum"])


def test_cleanup_prints_removed_rows(catalog_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with session_scope() as session:
        search_cache.upsert(session, "old", EntityType.UNIVERSITY, ["u-1"], cache_hours=-1)

    assert run_jobs.main(["cleanup"]) == 0
    assert json.loads(capsys.readouterr().out) == {"job": "cleanup", "removed": 1}


def test_refresh_job_runs_against_empty_catalog(catalog_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert run_jobs.main(["refresh"]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output == {"job": "refresh", "processed": 0, "refreshed": 0, "errors": 0}


def test_failures_return_non_zero(catalog_db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def boom() -> None:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(run_jobs, "init_db", boom)
    assert run_jobs.main(["rebuild"]) == 1
