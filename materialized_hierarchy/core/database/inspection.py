"""SQLAlchemy instance inspection utilities for change tracking.

These utilities use SQLAlchemy's inspection API to detect changes and read
persisted values without triggering database operations. The hierarchy
updater uses them to decide whether an update re-parented a record.

Example:
    >>> task = await session.get(Task, 1)
    >>> task.project = other_project
    >>> has_changes(task, "project", "project_id")
    True
    >>> get_original_values(task, "hierarchy_parent_id")
    {'hierarchy_parent_id': '1'}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState
    from sqlalchemy.orm.attributes import History


def has_changes(instance: Any, *attrs: str) -> bool:
    """Check if ORM instance has pending changes.

    Detects uncommitted modifications to the instance, optionally
    checking only specific attributes.

    Args:
        instance: SQLAlchemy ORM model instance
        *attrs: Optional attribute names to check. If empty, checks all.

    Returns:
        True if instance has pending changes, False otherwise.

    Note:
        - Pending (new) and deleted instances always report changes
        - Attributes that are not loaded are skipped, never lazy loaded
    """
    state: InstanceState[Any] = sa_inspect(instance)

    if state.pending or state.transient or state.deleted:
        return True

    if not attrs:
        return state.modified

    for attr_name in attrs:
        if attr_name not in state.dict:
            continue

        attr_state = state.attrs.get(attr_name)
        if attr_state is None:
            continue

        history: History = attr_state.history
        if history.has_changes():
            return True

    return False


def get_original_values(instance: Any, *attrs: str) -> dict[str, Any]:
    """Get original values of attributes before modification.

    Attributes that are neither loaded nor modified are omitted.

    Args:
        instance: SQLAlchemy ORM model instance
        *attrs: Attribute names to get. If empty, gets all column attributes.

    Returns:
        Dictionary of attribute names to their original values.

    Example:
        >>> task.hierarchy_parent_id = "2"
        >>> get_original_values(task, "hierarchy_parent_id")
        {'hierarchy_parent_id': '1'}
    """
    state: InstanceState[Any] = sa_inspect(instance)
    original: dict[str, Any] = {}

    attrs_to_check: tuple[str, ...] | list[str]
    attrs_to_check = attrs or [a.key for a in state.mapper.column_attrs]

    for attr_name in attrs_to_check:
        attr_state = state.attrs.get(attr_name)
        if attr_state is None:
            continue

        history: History = attr_state.history

        if history.deleted:
            original[attr_name] = history.deleted[0]
        elif history.unchanged:
            original[attr_name] = history.unchanged[0]
        elif attr_name in state.dict and not history.added:
            original[attr_name] = state.dict[attr_name]

    return original


def is_new(instance: Any) -> bool:
    """Check if instance is new (not yet in database).

    Inside a flush this stays True for rows being inserted until the flush
    assigns their identity key.

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        True if instance has never been flushed to database
    """
    state: InstanceState[Any] = sa_inspect(instance)
    return state.key is None


def get_primary_key(instance: Any) -> tuple[Any, ...]:
    """Get primary key value(s) for instance.

    Args:
        instance: SQLAlchemy ORM model instance

    Returns:
        Tuple of primary key values (single value tuple for simple PKs);
        values are None until assigned. Inside a flush, keys generated by
        an INSERT that already ran are visible before the identity is set.

    Example:
        >>> get_primary_key(task)
        (1,)
    """
    state: InstanceState[Any] = sa_inspect(instance)
    if state.identity is not None:
        return tuple(state.identity)

    mapper = state.mapper
    return tuple(
        state.dict.get(mapper.get_property_by_column(column).key)
        for column in mapper.primary_key
    )


__all__ = [
    "get_original_values",
    "get_primary_key",
    "has_changes",
    "is_new",
]
