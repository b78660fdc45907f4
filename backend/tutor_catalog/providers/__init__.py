"""University data providers."""

from .base import NormalizedUniversity, UniversityProvider, is_valid_normalized
from .hipolabs import HipolabsProvider
from .registry import ProviderRegistry, provider_registry

__all__ = [
    "HipolabsProvider",
    "NormalizedUniversity",
    "ProviderRegistry",
    "UniversityProvider",
    "is_valid_normalized",
    "provider_registry",
]
