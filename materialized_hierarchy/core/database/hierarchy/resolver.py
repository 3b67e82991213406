"""Parent resolution.

Finds the current parent of a record by following its configured parent
source. Resolution reads the in-memory attribute, so an assignment that has
not been flushed yet is already visible.

Following a relationship may lazy load. Call these functions from
synchronous ORM code (flush events) or through ``AsyncSession.run_sync``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import MANYTOONE, object_session

from materialized_hierarchy.core.database.hierarchy.config import config_for
from materialized_hierarchy.core.database.inspection import has_changes
from materialized_hierarchy.infra.logging.lazy import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.orm import RelationshipProperty

    from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig

_lazy = get_lazy_logger(__name__)


def _many_to_one(cls: type, field: str) -> RelationshipProperty[Any] | None:
    rel = sa_inspect(cls).relationships.get(field)
    if rel is None or rel.direction is not MANYTOONE:
        return None
    return rel


def parent_foreign_keys(cls: type, field: str) -> tuple[str, ...]:
    """Attribute names of the local foreign key columns behind ``field``.

    Empty when ``field`` is not a many-to-one relationship.
    """
    rel = _many_to_one(cls, field)
    if rel is None:
        return ()
    mapper = sa_inspect(cls)
    return tuple(mapper.get_property_by_column(column).key for column in rel.local_columns)


def _reconcile_foreign_key(record: Any, field: str, parent: Any) -> Any:
    """Honor a foreign key that was assigned directly.

    ``task.project_id = 5`` does not refresh an already loaded
    ``task.project``, and a pending ``Task(project_id=5)`` does not lazy
    load ``task.project`` at all. Only called when the relationship itself
    was not assigned in memory; the key wins.
    """
    cls = type(record)
    rel = _many_to_one(cls, field)
    if rel is None:
        return parent

    mapper = sa_inspect(cls)
    pairs = [
        (getattr(record, mapper.get_property_by_column(local).key), remote)
        for local, remote in rel.local_remote_pairs
    ]
    if all(value is None for value, _ in pairs):
        return None

    if parent is not None:
        target_mapper = sa_inspect(type(parent))
        current = [
            getattr(parent, target_mapper.get_property_by_column(remote).key)
            for _, remote in pairs
        ]
        if current == [value for value, _ in pairs]:
            return parent

    session = object_session(record)
    if session is None:
        return parent

    identity = tuple(value for value, _ in pairs)
    _lazy.debug(
        lambda: f"Foreign key of {cls.__name__}.{field} reassigned; loading {identity}"
    )
    return session.get(rel.mapper.class_, identity[0] if len(identity) == 1 else identity)


def resolve_parent(record: Any, config: HierarchyConfig | None = None) -> Any | None:
    """Return the current parent of ``record`` or None if it is a root.

    Args:
        record: Hierarchable instance.
        config: Configuration to use instead of the record's own.

    Returns:
        The object held by the selected parent attribute. None when the type
        has no parent source, the computed selector returns None, or the
        attribute is empty.

    Example:
        >>> task.project = other_project  # not flushed yet
        >>> resolve_parent(task) is other_project
        True
    """
    config = config or config_for(record)
    if config is None:
        return None

    field = config.parent_source.field_for(record)
    if field is None:
        return None

    # Checked before the read: reading may initialize the attribute
    state = sa_inspect(record)
    assigned = field in state.dict and (state.key is None or has_changes(record, field))

    parent = getattr(record, field, None)
    if assigned:
        return parent
    return _reconcile_foreign_key(record, field, parent)


__all__ = [
    "parent_foreign_keys",
    "resolve_parent",
]
