"""Core database package: declarative base, mixins and hierarchy support.

Base Classes and Mixins:
    - Base: Declarative base with constraint naming and auto table naming
    - IntegerPKMixin, UUIDPKMixin: Primary key strategies
    - TimestampMixin: created_at, updated_at tracking
    - HierarchableMixin: Materialized ancestry path columns and traversal

Change Tracking:
    - has_changes: Check if ORM instance has pending changes
    - get_original_values: Values as last loaded from the database
    - is_new: Check if an instance has been flushed
    - get_primary_key: Primary key values without loading

Exceptions:
    - HierarchyError: Base for hierarchy errors
    - HierarchyConfigurationError: Invalid per-type configuration
    - UnsupportedHierarchyQueryError: Query needs a missing association map

Example:
    from materialized_hierarchy.core.database import (
        Base,
        HierarchableMixin,
        HierarchyConfig,
        IntegerPKMixin,
    )

    class Task(Base, IntegerPKMixin, HierarchableMixin):
        __tablename__ = "tasks"
        __hierarchy__ = HierarchyConfig(parent_source="project")
        ...
"""

from materialized_hierarchy.core.database.base import (
    NAMING_CONVENTION,
    Base,
    IntegerPKMixin,
    TimestampMixin,
    UUIDPKMixin,
)
from materialized_hierarchy.core.database.exceptions import (
    HierarchyConfigurationError,
    HierarchyError,
    UnsupportedHierarchyQueryError,
)
from materialized_hierarchy.core.database.inspection import (
    get_original_values,
    get_primary_key,
    has_changes,
    is_new,
)
from materialized_hierarchy.core.database.hierarchy import (
    HierarchableMixin,
    HierarchyConfig,
    HierarchyPath,
    HierarchyRef,
    ParentSource,
)

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "HierarchableMixin",
    "HierarchyConfig",
    "HierarchyConfigurationError",
    "HierarchyError",
    "HierarchyPath",
    "HierarchyRef",
    "IntegerPKMixin",
    "ParentSource",
    "TimestampMixin",
    "UUIDPKMixin",
    "UnsupportedHierarchyQueryError",
    "get_original_values",
    "get_primary_key",
    "has_changes",
    "is_new",
]
