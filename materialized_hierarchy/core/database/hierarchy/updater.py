"""Hierarchy field updater.

Computes the three derived columns of a record, in order:

1. parent reference, from the resolved parent
2. root reference, from the parent's root (or the parent itself)
3. ancestors path, from the parent's path plus the parent's token

``HierarchableMixin`` runs these stages from SQLAlchemy flush events:
``before_insert`` runs all three, ``before_update`` runs the first two and
recomputes the path only when the parent changed. Parents are inserted
before their children within a flush, so a parent's identifier and path are
available when the child's stages run.

Updating a record never touches its descendants; ``rebuild_hierarchy``
repairs a subtree explicitly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from materialized_hierarchy.core.database.hierarchy.config import config_for
from materialized_hierarchy.core.database.hierarchy.registry import (
    HierarchyRef,
    ref_for,
    token_for,
)
from materialized_hierarchy.core.database.hierarchy.resolver import resolve_parent
from materialized_hierarchy.infra.logging.lazy import get_lazy_logger

if TYPE_CHECKING:
    from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig

_lazy = get_lazy_logger(__name__)

_UNRESOLVED: Any = object()


def _has_columns(target: Any, *columns: str) -> bool:
    cls = target if isinstance(target, type) else type(target)
    return all(hasattr(cls, column) for column in columns)


def _write_ref(record: Any, prefix: str, ref: HierarchyRef | None) -> None:
    setattr(record, f"{prefix}_type", ref.type_name if ref else None)
    setattr(record, f"{prefix}_id", ref.id if ref else None)


def set_hierarchy_parent(record: Any, config: HierarchyConfig | None = None) -> Any | None:
    """Stage 1: store the reference of the resolved parent.

    The reference is cleared when the parent source yields no parent. Types
    without a parent source are left untouched.

    Returns:
        The resolved parent, for use by the later stages.
    """
    config = config or config_for(record)
    if (
        config is None
        or not config.parent_source.is_configured
        or not _has_columns(record, "hierarchy_parent_type", "hierarchy_parent_id")
    ):
        return None

    parent = resolve_parent(record, config)
    ref = ref_for(parent)
    if parent is not None and ref is None:
        _lazy.warning(
            "Parent %s of %s has no identifier yet; storing no parent reference",
            lambda: type(parent).__name__,
            lambda: type(record).__name__,
        )
    _write_ref(record, "hierarchy_parent", ref)
    _lazy.debug(lambda: f"Set hierarchy parent of {type(record).__name__} to {ref}")
    return parent


def set_hierarchy_root(record: Any, parent: Any = _UNRESOLVED) -> HierarchyRef | None:
    """Stage 2: store the root reference derived from ``parent``.

    The root is the parent's own root when it has one, otherwise the parent
    itself. A record without a parent is a root and keeps an empty root
    reference.

    Args:
        record: Hierarchable instance.
        parent: Parent returned by stage 1. Resolved again when omitted.
    """
    config = config_for(record)
    if (
        config is None
        or not config.parent_source.is_configured
        or not _has_columns(record, "hierarchy_root_type", "hierarchy_root_id")
    ):
        return None
    if parent is _UNRESOLVED:
        parent = resolve_parent(record, config)

    root: HierarchyRef | None = None
    if parent is not None:
        root = HierarchyRef.from_columns(
            getattr(parent, "hierarchy_root_type", None),
            getattr(parent, "hierarchy_root_id", None),
        ) or ref_for(parent)

    _write_ref(record, "hierarchy_root", root)
    _lazy.debug(lambda: f"Set hierarchy root of {type(record).__name__} to {root}")
    return root


def set_hierarchy_ancestors_path(record: Any, parent: Any = _UNRESOLVED) -> str | None:
    """Stage 3: store the ancestors path derived from ``parent``.

    - no parent, or a parent without a path column: None
    - parent with an empty path (a root): the parent's token
    - otherwise: the parent's path, the path separator, the parent's token

    Args:
        record: Hierarchable instance.
        parent: Parent returned by stage 1. Resolved again when omitted.
    """
    config = config_for(record)
    if config is None or not _has_columns(record, "hierarchy_ancestors_path"):
        return None
    if parent is _UNRESOLVED:
        parent = resolve_parent(record, config)

    path: str | None = None
    if parent is not None and _has_columns(parent, "hierarchy_ancestors_path"):
        parent_token = token_for(parent, config) or None
        parent_path = getattr(parent, "hierarchy_ancestors_path", None)
        if parent_token is None:
            path = None
        elif parent_path:
            path = f"{parent_path}{config.path_separator}{parent_token}"
        else:
            path = parent_token

    record.hierarchy_ancestors_path = path
    _lazy.debug(lambda: f"Set ancestors path of {type(record).__name__} to {path!r}")
    return path


def apply_hierarchy_fields(record: Any, *, recompute_path: bool = True) -> None:
    """Run the three stages in order.

    Args:
        record: Hierarchable instance.
        recompute_path: Run stage 3. Inserts always do; updates only when
            the parent changed.
    """
    config = config_for(record)
    if config is None:
        return

    parent = set_hierarchy_parent(record, config)
    set_hierarchy_root(record, parent)
    if recompute_path:
        set_hierarchy_ancestors_path(record, parent)


__all__ = [
    "apply_hierarchy_fields",
    "set_hierarchy_ancestors_path",
    "set_hierarchy_parent",
    "set_hierarchy_root",
]
