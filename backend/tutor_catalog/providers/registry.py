"""Lookup table of university providers by name."""

from __future__ import annotations

from threading import RLock
from typing import Dict, List, Optional

from ..config import get_settings
from ..errors import UnknownProviderError
from .base import UniversityProvider
from .hipolabs import HipolabsProvider


class ProviderRegistry:
    def __init__(self) -> None:
        self._providers: Dict[str, UniversityProvider] = {}
        self._lock = RLock()

    def register(self, provider: UniversityProvider) -> None:
        """Register ``provider``; a later registration under the same name replaces it."""
        with self._lock:
            self._providers[provider.name] = provider

    def get(self, name: str) -> UniversityProvider:
        with self._lock:
            provider = self._providers.get(name)
            if provider is None:
                raise UnknownProviderError(name, self._providers.keys())
            return provider

    def get_default(self) -> UniversityProvider:
        return self.get(get_settings().default_provider)

    def resolve(self, name: Optional[str]) -> UniversityProvider:
        if name is None or not name.strip():
            return self.get_default()
        return self.get(name.strip())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._providers)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._providers


provider_registry = ProviderRegistry()
provider_registry.register(HipolabsProvider())

__all__ = ["ProviderRegistry", "provider_registry"]
