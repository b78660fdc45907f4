"""Maintenance jobs run from ``scripts/run_jobs.py`` or the admin API."""

from .cache_rebuild import process_cache_rebuild
from .content_refresh import process_content_refresh

__all__ = ["process_cache_rebuild", "process_content_refresh"]
