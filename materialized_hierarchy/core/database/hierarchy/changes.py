"""Parent change detection.

Decides whether an update moved a record to a different parent, which is
the only case where its ancestors path has to be recomputed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from materialized_hierarchy.core.database.hierarchy.config import config_for
from materialized_hierarchy.core.database.hierarchy.registry import HierarchyRef, ref_for
from materialized_hierarchy.core.database.hierarchy.resolver import (
    parent_foreign_keys,
    resolve_parent,
)
from materialized_hierarchy.core.database.inspection import (
    get_original_values,
    has_changes,
    is_new,
)

if TYPE_CHECKING:
    from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig

PARENT_COLUMNS = ("hierarchy_parent_type", "hierarchy_parent_id")


def persisted_parent_ref(record: Any) -> HierarchyRef | None:
    """Return the parent reference as last loaded from the database.

    Values assigned to the reference columns since then are ignored.
    """
    original = get_original_values(record, *PARENT_COLUMNS)
    values = [
        original[column] if column in original else getattr(record, column, None)
        for column in PARENT_COLUMNS
    ]
    return HierarchyRef.from_columns(*values)


def hierarchy_parent_changed(record: Any, config: HierarchyConfig | None = None) -> bool:
    """Check whether ``record``'s effective parent differs from the persisted one.

    Returns:
        False for types without a parent source. True for new records, when
        the parent relationship or its foreign key columns carry unflushed
        changes, or when the currently resolved parent is not the persisted
        parent reference (a computed selector that switched fields).

    Note:
        Resolving the parent may lazy load; see ``resolve_parent``.
    """
    config = config or config_for(record)
    if config is None or not config.parent_source.is_configured:
        return False
    if is_new(record):
        return True

    field = config.parent_source.field_for(record)
    if field is not None and has_changes(
        record, field, *parent_foreign_keys(type(record), field)
    ):
        return True

    return ref_for(resolve_parent(record, config)) != persisted_parent_ref(record)


__all__ = [
    "PARENT_COLUMNS",
    "hierarchy_parent_changed",
    "persisted_parent_ref",
]
