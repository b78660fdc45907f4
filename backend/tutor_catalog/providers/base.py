"""Contract shared by every university data provider."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel


class NormalizedUniversity(BaseModel):
    """Provider record mapped into the shape the catalog stores."""

    name: str
    normalized_name: str
    country: str
    state: Optional[str] = None
    domain: Optional[str] = None
    web_page: Optional[str] = None
    alpha_code: Optional[str] = None
    provider: str


@runtime_checkable
class UniversityProvider(Protocol):
    name: str
    endpoint: str

    def search(self, query: str) -> List[NormalizedUniversity]:
        """Search the upstream API. Must return ``[]`` instead of raising."""
        ...

    def is_available(self) -> bool:
        ...


def is_valid_normalized(university: NormalizedUniversity) -> bool:
    return bool(
        university.name
        and university.normalized_name
        and university.country
        and university.provider
    )


__all__ = ["NormalizedUniversity", "UniversityProvider", "is_valid_normalized"]
