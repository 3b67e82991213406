"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (hierarchy encoding, logging), each:
- Read from environment variables with a domain prefix
- Optionally read from YAML/conf.d files for local development
- Cached through an LRU loader
- Frozen after validation

Import settings via cached loaders:
    from materialized_hierarchy.core.settings import get_hierarchy_settings

    settings = get_hierarchy_settings()
    print(settings.path_separator)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .hierarchy import HierarchySettings
from .loader import (
    clear_all_caches,
    get_hierarchy_settings,
    get_logging_settings,
)
from .logs import LoggingSettings

__all__ = [
    "HierarchySettings",
    "LoggingSettings",
    "clear_all_caches",
    "get_hierarchy_settings",
    "get_logging_settings",
]
