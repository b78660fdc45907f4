"""In-memory caches shared across backend services."""

from .search_result_cache import SearchResultCache, cache_key, search_result_cache

__all__ = ["SearchResultCache", "cache_key", "search_result_cache"]
