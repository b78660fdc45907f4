from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from tutor_catalog.db.session import session_scope
from tutor_catalog.errors import CatalogNotFoundError, InvalidQueryError, UnknownProviderError
from tutor_catalog.normalization import normalize_university_name
from tutor_catalog.providers import NormalizedUniversity, provider_registry
from tutor_catalog.repositories import external_sources
from tutor_catalog.repositories import universities as university_rows
from tutor_catalog.services import universities


class FakeProvider:
    name = "hipolabs"
    endpoint = "http://hipo.test"

    def __init__(self, names: List[str], available: bool = True) -> None:
        self.names = names
        self.available = available
        self.queries: List[str] = []

    def search(self, query: str) -> List[NormalizedUniversity]:
        self.queries.append(query)
        return [
            NormalizedUniversity(
                name=name,
                normalized_name=normalize_university_name(name),
                country="India" if name else "",
                domain=f"{normalize_university_name(name).replace(' ', '')}.edu",
                provider=self.name,
            )
            for name in self.names
        ]

    def is_available(self) -> bool:
        if not self.available:
            raise RuntimeError("upstream down")
        return True


@pytest.fixture
def fake_provider(monkeypatch: pytest.MonkeyPatch) -> FakeProvider:
    provider = FakeProvider(["Anna University", "Anna University Chennai", ""])
    monkeypatch.setitem(provider_registry._providers, "hipolabs", provider)
    return provider


def test_miss_calls_provider_and_persists_results(catalog_db: Path, fake_provider: FakeProvider) -> None:
    response = universities.search_universities("Anna")

    assert fake_provider.queries == ["Anna"]
    assert response.meta.cache_hit is False
    assert response.meta.provider == "hipolabs"
    assert [item.name for item in response.data] == ["Anna University", "Anna University Chennai"]
    assert response.data[0].provider == "hipolabs"
    assert response.data[0].domain == "annauniversity.edu"
    with session_scope(commit=False) as session:
        source = external_sources.find_by_name(session, "hipolabs")
        assert source is not None
        assert source.last_sync is not None


def test_stored_rows_answer_without_provider(catalog_db: Path, fake_provider: FakeProvider) -> None:
    universities.search_universities("Anna")
    response = universities.search_universities("anna university", limit=1)

    assert fake_provider.queries == ["Anna"]
    assert response.meta.cache_hit is True
    assert response.meta.provider is None
    assert response.meta.total_results == 1
    assert response.meta.query == "anna university"


def test_repeat_provider_results_are_not_duplicated(catalog_db: Path, fake_provider: FakeProvider) -> None:
    first = universities.search_universities("Anna")
    stored = universities.persist_provider_results(fake_provider, fake_provider.search("Anna")[:2])
    again = universities.search_universities("Anna")

    assert stored == 2
    assert [item.id for item in again.data] == [item.id for item in first.data]


def test_invalid_inputs(catalog_db: Path, fake_provider: FakeProvider) -> None:
    with pytest.raises(InvalidQueryError):
        universities.search_universities("   ")
    with pytest.raises(UnknownProviderError):
        universities.search_universities("anna", provider="openalex")
    assert fake_provider.queries == []


def test_get_university_and_health(catalog_db: Path, fake_provider: FakeProvider) -> None:
    stored = universities.search_universities("Anna").data[0]

    assert universities.get_university(stored.id).name == "Anna University"
    with pytest.raises(CatalogNotFoundError):
        universities.get_university("missing")

    assert universities.check_provider_health() is True
    fake_provider.available = False
    assert universities.check_provider_health("hipolabs") is False
    assert universities.check_provider_health("openalex") is False


def test_persistence_failure_is_logged_not_raised(
    catalog_db: Path, fake_provider: FakeProvider, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_store(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(universities, "normalize_and_store_university", broken_store)
    with caplog.at_level("ERROR", logger="tutor_catalog.services.universities"):
        response = universities.search_universities("Anna")

    assert response.meta.cache_hit is False
    assert response.meta.provider == "hipolabs"
    assert response.data == []
    assert "Failed to persist 2 universities from hipolabs" in caplog.text
    with session_scope(commit=False) as session:
        assert university_rows.count(session) == 0


def test_only_first_fifty_provider_results_are_stored(
    catalog_db: Path, fake_provider: FakeProvider
) -> None:
    fake_provider.names = [f"Test University {index}" for index in range(60)]

    response = universities.search_universities("Test")

    assert response.meta.total_results == 20
    with session_scope(commit=False) as session:
        assert university_rows.count(session) == 50
        stored = {row.name for row in university_rows.search_by_name(session, "test university", limit=100)}
    assert "Test University 49" in stored
    assert "Test University 50" not in stored
