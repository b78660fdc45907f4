from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from tutor_catalog.main import app
from tutor_catalog.normalization import normalize_university_name
from tutor_catalog.providers import NormalizedUniversity, provider_registry


class StaticProvider:
    name = "hipolabs"
    endpoint = "http://hipo.test"

    def search(self, query: str) -> List[NormalizedUniversity]:
        return [
            NormalizedUniversity(
                name="Anna University",
                normalized_name=normalize_university_name("Anna University"),
                country="India",
                provider=self.name,
            )
        ]

    def is_available(self) -> bool:
        return True


@pytest.fixture
def client(catalog_db: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setitem(provider_registry._providers, "hipolabs", StaticProvider())
    with TestClient(app) as test_client:
        yield test_client


def test_exam_catalog_walkthrough(client: TestClient) -> None:
    headers = {"X-User-Id": "learner-1"}
    response = client.get("/api/exam/universities", params={"search": "Delhi"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["cache_hit"] is False
    university_id = body["universities"][0]["id"]

    courses = client.get("/api/exam/courses", params={"university": university_id}).json()["courses"]
    assert len(courses) == 6
    semesters = client.get(
        "/api/exam/semesters", params={"university": university_id, "course": courses[0]["id"]}
    ).json()["semesters"]
    assert [item["number"] for item in semesters] == list(range(1, 9))
    subjects = client.get(
        "/api/exam/subjects",
        params={"university": university_id, "course": courses[0]["id"], "semester": semesters[0]["id"]},
    ).json()["subjects"]
    assert len(subjects) == 8

    history = client.get("/api/admin/analytics/history/learner-1").json()
    assert [entry["query"] for entry in history] == ["Delhi"]


def test_exam_catalog_validation_errors(client: TestClient) -> None:
    assert client.get("/api/exam/universities").status_code == 422
    assert client.get("/api/exam/courses").status_code == 422

    blank = client.get("/api/exam/universities", params={"search": "?!"})
    assert blank.status_code == 400
    assert blank.json()["error"] == "Validation Error"

    missing = client.get("/api/exam/courses", params={"university": "nope"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Not Found", "message": "University 'nope' was not found."}


def test_university_search_endpoints(client: TestClient) -> None:
    response = client.get("/api/universities/search", params={"q": "anna", "limit": 5})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["meta"]["provider"] == "hipolabs"
    university_id = body["data"][0]["id"]

    detail = client.get(f"/api/universities/{university_id}")
    assert detail.status_code == 200
    assert detail.json()["data"]["name"] == "Anna University"

    assert client.get("/api/universities/missing").status_code == 404
    assert client.get("/api/universities/search").status_code == 400
    assert client.get("/api/universities/search", params={"q": "anna", "limit": 0}).status_code == 422

    unknown = client.get("/api/universities/search", params={"q": "anna", "provider": "openalex"})
    assert unknown.status_code == 400
    assert "openalex" in unknown.json()["message"]

    assert client.get("/api/universities/health/hipolabs").json() == {"provider": "hipolabs", "available": True}
    assert client.get("/api/universities/health/openalex").json()["available"] is False


def test_admin_cache_endpoints(client: TestClient) -> None:
    client.get("/api/exam/universities", params={"search": "Delhi"})

    stats = client.get("/api/admin/cache/stats").json()
    assert stats["l2_stats"]["total"] == 1
    assert stats["l1_available"] is True

    assert client.delete("/api/admin/cache", params={"entity_type": "UNIVERSITY", "query": " "}).status_code == 400
    assert client.delete("/api/admin/cache", params={"entity_type": "BOGUS"}).status_code == 422
    removed = client.delete("/api/admin/cache", params={"entity_type": "UNIVERSITY", "query": "delhi"})
    assert removed.json() == {"removed": 1}
    assert client.delete("/api/admin/cache", params={"entity_type": "COURSE"}).json() == {"removed": 0}
    assert client.post("/api/admin/cache/cleanup").json() == {"removed": 0}


def test_admin_cache_delete_matches_search_normalization(client: TestClient) -> None:
    client.get("/api/exam/universities", params={"search": "Delhi"})

    assert client.delete("/api/admin/cache", params={"entity_type": "UNIVERSITY", "query": "?!"}).status_code == 400
    removed = client.delete("/api/admin/cache", params={"entity_type": "UNIVERSITY", "query": "  DELHI!  "})
    assert removed.json() == {"removed": 1}
    assert client.get("/api/admin/cache/stats").json()["l2_stats"]["total"] == 0


def test_admin_analytics_and_refresh_endpoints(client: TestClient) -> None:
    client.get("/api/exam/universities", params={"search": "Delhi"})
    client.get("/api/exam/universities", params={"search": "delhi"})

    stats = client.get("/api/admin/analytics/search", params={"days": 7}).json()
    assert stats["total_searches"] == 2
    assert stats["cache_hit_rate"] == 0.5
    assert stats["top_queries"] == [{"query": "delhi", "count": 2}]

    popular = client.get("/api/admin/analytics/popular", params={"entity_type": "UNIVERSITY"}).json()
    assert popular == [{"query": "delhi", "count": 2}]
    assert client.get("/api/admin/analytics/slow-queries", params={"threshold_ms": 100000}).json() == []

    freshness = client.get("/api/admin/refresh/COURSE/unknown").json()
    assert freshness["needs_refresh"] is True

    refresh_stats = client.get("/api/admin/refresh/stats").json()
    assert refresh_stats["by_type"]["UNIVERSITY"]["stale"] == 2

    job = client.post("/api/admin/jobs/refresh", params={"entity_type": "UNIVERSITY"}).json()
    assert job == {"processed": 2, "refreshed": 2, "errors": 0}

    rebuild = client.post("/api/admin/jobs/cache-rebuild").json()
    assert rebuild["prewarmed"] == 1
    assert rebuild["errors"] == 0

    outcome = client.post("/api/admin/refresh/SEMESTER/missing").json()
    assert outcome["success"] is False

    rate = client.get("/api/admin/exam-api/rate-limit").json()
    assert rate["total"] == 100
    assert rate["remaining"] == 100
