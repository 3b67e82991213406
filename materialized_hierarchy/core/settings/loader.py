"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.
This ensures:
- Single source of truth
- Fast O(1) access after first load
- No repeated file/env parsing
- Immutable configuration

Usage:
    from materialized_hierarchy.core.settings.loader import get_hierarchy_settings

    settings = get_hierarchy_settings()  # First call: loads and validates
    settings = get_hierarchy_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_hierarchy_settings.cache_clear()

    Or build an instance with explicit values:
    settings = HierarchySettings(path_separator="##")
"""

from __future__ import annotations

from functools import lru_cache

from .hierarchy import HierarchySettings
from .logs import LoggingSettings


@lru_cache(maxsize=1)
def get_hierarchy_settings() -> HierarchySettings:
    """Get cached hierarchy encoding settings.

    Returns:
        Validated and frozen HierarchySettings instance.
    """
    return HierarchySettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful for testing or when you need to force reload settings.
    In production, prefer process restarts over cache clearing.
    """
    get_hierarchy_settings.cache_clear()
    get_logging_settings.cache_clear()
