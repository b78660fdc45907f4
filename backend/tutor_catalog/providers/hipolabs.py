"""Provider backed by the public Hipolabs universities API."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import httpx

from ..config import get_settings
from ..normalization import normalize_university_name
from .base import NormalizedUniversity

logger = logging.getLogger(__name__)


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list) and values:
        first = values[0]
        if isinstance(first, str) and first.strip():
            return first.strip()
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class HipolabsProvider:
    name = "hipolabs"

    def __init__(
        self,
        endpoint: Optional[str] = None,
        *,
        timeout_seconds: Optional[float] = None,
        health_timeout_seconds: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        settings = get_settings()
        self.endpoint = (endpoint or settings.hipolabs_endpoint).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.hipolabs_timeout_seconds
        self.health_timeout_seconds = health_timeout_seconds or settings.hipolabs_health_timeout_seconds
        self._client = client

    def _get(self, params: Mapping[str, str], timeout: float) -> httpx.Response:
        local_client = self._client or httpx.Client(timeout=timeout)
        close_client = self._client is None
        try:
            response = local_client.get(
                f"{self.endpoint}/search",
                params=params,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
            response.raise_for_status()
            return response
        finally:
            if close_client:
                local_client.close()

    def search(self, query: str) -> List[NormalizedUniversity]:
        try:
            response = self._get({"name": query}, self.timeout_seconds)
            payload = response.json()
        except httpx.TimeoutException:
            logger.error("Hipolabs timed out for query=%r", query)
            return []
        except httpx.HTTPStatusError as exc:
            logger.error("Hipolabs returned HTTP %s for query=%r", exc.response.status_code, query)
            return []
        except httpx.HTTPError as exc:
            logger.error("Hipolabs request failed for query=%r: %s", query, exc)
            return []
        except ValueError:
            logger.error("Hipolabs returned invalid JSON for query=%r", query)
            return []

        if not isinstance(payload, list):
            return []
        return [self._normalize(raw) for raw in payload if isinstance(raw, dict)]

    def is_available(self) -> bool:
        try:
            self._get({"name": "test"}, self.health_timeout_seconds)
        except httpx.HTTPError:
            return False
        return True

    def _normalize(self, raw: Mapping[str, Any]) -> NormalizedUniversity:
        name = _text(raw.get("name")) or "Unknown University"
        return NormalizedUniversity(
            name=name,
            normalized_name=normalize_university_name(name),
            country=_text(raw.get("country")) or "Unknown",
            state=_text(raw.get("state-province")),
            domain=_first(raw.get("domains")),
            web_page=_first(raw.get("web_pages")),
            alpha_code=_text(raw.get("alpha_two_code")),
            provider=self.name,
        )


__all__ = ["HipolabsProvider"]
