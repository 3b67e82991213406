"""Explicit subtree repair.

Saving a record recomputes only its own hierarchy fields. After a record is
moved, the reference and path columns stored on its descendants still
describe the old position. ``rebuild_hierarchy`` walks the subtree and
rewrites them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import with_parent

from materialized_hierarchy.core.database.hierarchy.associations import child_associations
from materialized_hierarchy.core.database.hierarchy.config import config_for
from materialized_hierarchy.core.database.hierarchy.registry import ref_for, token_for
from materialized_hierarchy.core.database.hierarchy.updater import apply_hierarchy_fields
from materialized_hierarchy.infra.logging.context import log_context
from materialized_hierarchy.infra.logging.lazy import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_lazy = get_lazy_logger(__name__)

HIERARCHY_FIELDS = (
    "hierarchy_parent_type",
    "hierarchy_parent_id",
    "hierarchy_root_type",
    "hierarchy_root_id",
    "hierarchy_ancestors_path",
)


def _snapshot(record: Any) -> tuple[Any, ...]:
    return tuple(getattr(record, name, None) for name in HIERARCHY_FIELDS)


def _recompute(_sync_session: Any, records: list[Any]) -> int:
    """Recompute every record in order and count the ones that changed."""
    changed = 0
    for record in records:
        before = _snapshot(record)
        apply_hierarchy_fields(record, recompute_path=True)
        if _snapshot(record) != before:
            changed += 1
    return changed


async def _load_children(session: AsyncSession, record: Any) -> list[Any]:
    cls = type(record)
    found: list[Any] = []
    for association in child_associations(cls):
        stmt = select(association.target).where(
            with_parent(record, getattr(cls, association.name))
        )
        found.extend((await session.scalars(stmt)).all())
    return found


async def rebuild_hierarchy(session: AsyncSession, record: Any) -> int:
    """Recompute the hierarchy fields of ``record`` and everything below it.

    The subtree is walked breadth-first through the association map, so
    each record is recomputed after its parent. Changes are flushed once at
    the end; committing is left to the caller.

    Args:
        session: Async database session.
        record: Hierarchable instance whose subtree should be repaired.

    Returns:
        Number of records whose stored hierarchy fields changed.

    Example:
        >>> task.project = other_project
        >>> await session.flush()  # task is moved, its subtasks are stale
        >>> await rebuild_hierarchy(session, task)
        3
    """
    if config_for(record) is None or ref_for(record) is None:
        return 0

    start = ref_for(record)
    visited = {start}
    changed = 0

    with log_context(hierarchy_rebuild=token_for(record)):
        with session.no_autoflush:
            level = [record]
            while level:
                changed += await session.run_sync(_recompute, level)

                next_level: list[Any] = []
                for node in level:
                    for child in await _load_children(session, node):
                        ref = ref_for(child)
                        if ref in visited:
                            _lazy.warning(
                                "Skipping %s already visited while rebuilding %s",
                                str(ref),
                                str(start),
                            )
                            continue
                        visited.add(ref)
                        next_level.append(child)
                level = next_level

        await session.flush()

    _lazy.info("Rebuilt hierarchy below %s: %d record(s) changed", str(start), changed)
    return changed


__all__ = ["rebuild_hierarchy"]
