"""Exceptions raised by the catalog pipeline and their HTTP mapping."""

from __future__ import annotations

from typing import Iterable


class CatalogError(Exception):
    """Base class for catalog failures surfaced to API callers."""

    status_code = 500
    title = "Internal Server Error"


class CatalogNotFoundError(CatalogError, LookupError):
    status_code = 404
    title = "Not Found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} '{entity_id}' was not found.")
        self.entity = entity
        self.entity_id = entity_id


class UnknownProviderError(CatalogError, ValueError):
    status_code = 400
    title = "Validation Error"

    def __init__(self, name: str, available: Iterable[str]) -> None:
        names = ", ".join(sorted(available))
        super().__init__(f'Unknown university provider "{name}". Available: {names}')
        self.name = name


class InvalidQueryError(CatalogError, ValueError):
    status_code = 400
    title = "Validation Error"


class ExternalIdConflictError(CatalogError):
    status_code = 409
    title = "Conflict"


class ExternalAPIError(CatalogError):
    status_code = 502
    title = "Upstream Error"


class RateLimitExceededError(ExternalAPIError):
    status_code = 429
    title = "Rate Limited"


__all__ = [
    "CatalogError",
    "CatalogNotFoundError",
    "ExternalAPIError",
    "ExternalIdConflictError",
    "InvalidQueryError",
    "RateLimitExceededError",
    "UnknownProviderError",
]
