"""Traversal over materialized hierarchy fields.

Every query reads the persisted reference and path columns, so a lookup is
an equality or a prefix match instead of a recursive walk:

- ancestors: decode the record's ancestors path and load each token
- siblings: records of each candidate type sharing the parent reference
- children: one query per child association of the record's type
- descendants: for a root, records whose root reference is the root; for
  any other record, records whose ancestors path equals its full path or
  starts with its full path followed by the path separator

Downward and lateral queries return ``{model: [records]}``. Pass
``compact=True`` to flatten the mapping into a single list, which is handy
once ``models`` narrows the query to one type.

Read paths never raise for missing data. Unsaved records, classes without
a hierarchy configuration, and unknown type names yield empty results. The
one exception is ``UnsupportedHierarchyQueryError`` from ``siblings`` when
every sibling type is requested but the parent type has no association map.

Example:
    >>> await descendants(session, project, models=[Task], compact=True)
    [<Task 1>, <Task 2>, <Task 3>]
    >>> await ancestors(session, subtask, include_self=True)
    [<Project 1>, <Task 1>, <Task 3>]
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import false, or_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import with_parent

from materialized_hierarchy.core.database.exceptions import UnsupportedHierarchyQueryError
from materialized_hierarchy.core.database.hierarchy.associations import (
    child_associations,
    children_models,
)
from materialized_hierarchy.core.database.hierarchy.changes import hierarchy_parent_changed
from materialized_hierarchy.core.database.hierarchy.config import config_for, is_hierarchable
from materialized_hierarchy.core.database.hierarchy.path import (
    decode_path,
    encode_path,
    escape_like,
)
from materialized_hierarchy.core.database.hierarchy.registry import (
    HierarchyRef,
    default_registry,
    fetch,
    ref_for,
    token_for,
)
from materialized_hierarchy.core.database.hierarchy.resolver import resolve_parent
from materialized_hierarchy.core.database.inspection import get_primary_key, is_new
from materialized_hierarchy.infra.logging.lazy import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig

ModelSelector = Literal["all", "this"] | type | str | Sequence[type | str]
HierarchyResult = dict[type, list[Any]]

_lazy = get_lazy_logger(__name__)

_PERSISTED: Any = object()


# ============================================================================
# Helpers
# ============================================================================


def _resolve_models(record: Any, models: ModelSelector) -> list[type] | None:
    """Turn a ``models`` selector into classes; None means "all"."""
    if models == "all":
        return None
    if models == "this":
        return [type(record)]
    if isinstance(models, (str, type)):
        models = [models]

    resolved: list[type] = []
    for model in models:
        cls = default_registry.safe_lookup(model) if isinstance(model, str) else model
        if cls is None:
            _lazy.warning("Unknown hierarchy type %s in models selector", model)
        elif cls not in resolved:
            resolved.append(cls)
    return resolved


def _selected(model: type, selection: list[type] | None) -> bool:
    return selection is None or model in selection


def _flatten(result: HierarchyResult, compact: bool) -> HierarchyResult | list[Any]:
    if not compact:
        return result
    return [item for items in result.values() for item in items]


def _primary_key_column(model: type) -> Any:
    return sa_inspect(model).primary_key[0]


def _own_id(record: Any) -> Any:
    return get_primary_key(record)[0]


def parent_ref(record: Any) -> HierarchyRef | None:
    """Persisted parent reference of ``record`` (None for roots)."""
    return HierarchyRef.from_columns(
        getattr(record, "hierarchy_parent_type", None),
        getattr(record, "hierarchy_parent_id", None),
    )


def root_ref(record: Any) -> HierarchyRef | None:
    """Persisted root reference of ``record`` (None for roots)."""
    return HierarchyRef.from_columns(
        getattr(record, "hierarchy_root_type", None),
        getattr(record, "hierarchy_root_id", None),
    )


def is_root(record: Any) -> bool:
    return root_ref(record) is None


def full_path(record: Any) -> str:
    """Ancestors path plus the record's own token; ``""`` if unsaved.

    Example:
        >>> full_path(kid)
        'Root|1/Parent|1/Kid|1'
    """
    config = config_for(record)
    token = token_for(record, config)
    if not token:
        return ""
    path = getattr(record, "hierarchy_ancestors_path", None)
    if not path:
        return token
    separator = config.path_separator if config else "/"
    return f"{path}{separator}{token}"


def path_for(records: Sequence[Any], config: HierarchyConfig | None = None) -> str:
    """Encode arbitrary records as a path, skipping records without an id.

    Args:
        records: Records in root-to-leaf order.
        config: Configuration supplying the separators. Defaults to the
            configuration of the first hierarchable record.
    """
    if config is None:
        config = next((c for c in map(config_for, records) if c is not None), None)
    tokens = [token for token in (token_for(r, config) for r in records) if token]
    return encode_path(tokens, config.path_separator if config else "/")


def _ancestor_refs(record: Any) -> list[HierarchyRef]:
    config = config_for(record)
    if config is None:
        return []
    tokens = decode_path(getattr(record, "hierarchy_ancestors_path", None), config.path_separator)
    return [HierarchyRef.from_token(token, config.record_separator) for token in tokens]


# ============================================================================
# Statement builders
# ============================================================================


def _descendant_clause(model: type, record: Any, *, use_root: bool) -> ColumnElement[bool]:
    config = config_for(record)
    if use_root and is_root(record):
        ref = ref_for(record)
        return (model.hierarchy_root_type == ref.type_name) & (
            model.hierarchy_root_id == ref.id
        )

    path = full_path(record)
    prefix = escape_like(path + config.path_separator, config.like_escape) + "%"
    return or_(
        model.hierarchy_ancestors_path == path,
        model.hierarchy_ancestors_path.like(prefix, escape=config.like_escape),
    )


def descendants_statement(model: type, record: Any) -> Select[Any]:
    """Composable SELECT of ``model`` rows below ``record``.

    Uses the path prefix match for every record, roots included, so the
    statement works without a root reference index.

    Example:
        >>> stmt = descendants_statement(Task, project).where(Task.done.is_(False))
        >>> open_tasks = (await session.scalars(stmt)).all()
    """
    stmt = select(model)
    if not is_hierarchable(model) or config_for(record) is None or ref_for(record) is None:
        return stmt.where(false())
    return stmt.where(_descendant_clause(model, record, use_root=False))


def siblings_statement(model: type, record: Any) -> Select[Any]:
    """Composable SELECT of ``model`` rows sharing ``record``'s parent reference.

    The record itself is not excluded. For a root the statement matches
    every root of ``model``.
    """
    stmt = select(model)
    if not is_hierarchable(model) or config_for(record) is None:
        return stmt.where(false())
    return stmt.where(
        model.hierarchy_parent_type == getattr(record, "hierarchy_parent_type", None),
        model.hierarchy_parent_id == getattr(record, "hierarchy_parent_id", None),
    )


# ============================================================================
# Model introspection (no I/O)
# ============================================================================


def ancestor_models(record: Any, *, include_self: bool = False) -> list[type]:
    """Distinct classes along the ancestors path, root first.

    Unknown type names are skipped. Useful for building breadcrumb layouts
    without loading the ancestors.
    """
    models: list[type] = []
    for ref in _ancestor_refs(record):
        cls = default_registry.safe_lookup(ref.type_name)
        if cls is None:
            _lazy.warning("Unknown hierarchy type %s in ancestors path", ref.type_name)
        elif cls not in models:
            models.append(cls)
    if include_self and type(record) not in models:
        models.append(type(record))
    return models


def descendant_models(target: Any, *, include_self: bool = False) -> list[type]:
    """Breadth-first closure of the association map starting at ``target``.

    Each class is expanded once, so self-referential and mutually
    referencing associations terminate. The starting class is listed only
    with ``include_self``, even when it can reach itself (Task through
    subtasks); ``descendants`` expands ``"all"`` with ``include_self=True``
    so such rows are still queried.

    Args:
        target: Hierarchable class or instance.
        include_self: List the starting class first.
    """
    start = target if isinstance(target, type) else type(target)
    if config_for(start) is None:
        return []

    visited: list[type] = [start]
    queue = deque(children_models(start))
    while queue:
        model = queue.popleft()
        if model in visited:
            continue
        visited.append(model)
        queue.extend(children_models(model))

    return visited if include_self else visited[1:]


def sibling_models(record: Any, *, include_self: bool = False) -> list[type]:
    """Classes that may hold siblings of ``record``.

    These are the child models of the persisted parent's type. A root has
    no sibling models other than its own type, listed only with
    ``include_self``.

    Raises:
        UnsupportedHierarchyQueryError: If the parent type is known but has
            no association map.
    """
    if config_for(record) is None:
        return []

    own = type(record)
    ref = parent_ref(record)
    if ref is None:
        return [own] if include_self else []

    parent_cls = default_registry.safe_lookup(ref.type_name)
    if parent_cls is None:
        _lazy.warning("Unknown hierarchy parent type %s", ref.type_name)
        return [own] if include_self else []
    if not is_hierarchable(parent_cls):
        raise UnsupportedHierarchyQueryError(own.__name__, ref.type_name)

    models = children_models(parent_cls)
    if include_self and own not in models:
        models.append(own)
    return models


# ============================================================================
# Queries
# ============================================================================


async def parent(session: AsyncSession, record: Any) -> Any | None:
    """Return the parent of ``record``.

    When the record is new or its parent changed in memory, the resolved
    parent is returned. Otherwise the persisted parent reference is loaded.
    """
    config = config_for(record)
    if config is None or not config.parent_source.is_configured:
        return None

    def _resolve_if_changed(_sync_session: Any) -> Any:
        if is_new(record) or hierarchy_parent_changed(record, config):
            return resolve_parent(record, config)
        return _PERSISTED

    resolved = await session.run_sync(_resolve_if_changed)
    if resolved is not _PERSISTED:
        return resolved
    return await fetch(session, parent_ref(record))


async def root(session: AsyncSession, record: Any) -> Any | None:
    """Return the persisted root of ``record``; None for roots and unsaved records."""
    if config_for(record) is None:
        return None
    return await fetch(session, root_ref(record))


async def ancestors(
    session: AsyncSession,
    record: Any,
    *,
    include_self: bool = False,
    models: ModelSelector = "all",
) -> list[Any]:
    """Return the ancestors of ``record``, root first.

    Tokens whose type is unknown or whose row no longer exists are skipped.

    Args:
        session: Async database session.
        record: Hierarchable instance.
        include_self: Append ``record`` itself.
        models: ``"all"``, ``"this"``, a class or name, or a sequence of them.
    """
    if config_for(record) is None:
        return []

    selection = _resolve_models(record, models)
    result: list[Any] = []
    for ref in _ancestor_refs(record):
        cls = default_registry.safe_lookup(ref.type_name)
        if cls is not None and not _selected(cls, selection):
            continue
        ancestor = await fetch(session, ref)
        if ancestor is not None:
            result.append(ancestor)

    if include_self and _selected(type(record), selection):
        result.append(record)
    return result


async def full_path_reified(session: AsyncSession, record: Any) -> list[tuple[type, Any]]:
    """Return ``(class, record)`` pairs along the full path, for breadcrumbs."""
    return [(type(item), item) for item in await ancestors(session, record, include_self=True)]


async def children(
    session: AsyncSession,
    record: Any,
    *,
    include_self: bool = False,
    models: ModelSelector = "all",
    compact: bool = False,
) -> HierarchyResult | list[Any]:
    """Return the direct children of ``record`` per child class.

    Runs one query per child association of the record's type. With
    ``include_self`` the record is added under its own class when that
    class is selected.
    """
    if config_for(record) is None:
        return [] if compact else {}

    selection = _resolve_models(record, models)
    cls = type(record)
    result: HierarchyResult = {}

    if not is_new(record):
        for association in child_associations(cls):
            if not _selected(association.target, selection):
                continue
            stmt = select(association.target).where(
                with_parent(record, getattr(cls, association.name))
            )
            rows = (await session.scalars(stmt)).all()
            bucket = result.setdefault(association.target, [])
            bucket.extend(row for row in rows if row not in bucket)

    if include_self and _selected(cls, selection):
        bucket = result.setdefault(cls, [])
        if record not in bucket:
            bucket.append(record)

    _lazy.debug(
        lambda: f"Children of {token_for(record)}: "
        + ", ".join(f"{m.__name__}={len(r)}" for m, r in result.items())
    )
    return _flatten(result, compact)


async def siblings(
    session: AsyncSession,
    record: Any,
    *,
    include_self: bool = False,
    models: ModelSelector = "all",
    compact: bool = False,
) -> HierarchyResult | list[Any]:
    """Return records sharing ``record``'s parent reference, per class.

    ``"all"`` expands to the child models of the parent's type plus the
    record's own type. Siblings of a root are the other roots of the
    listed types.

    Raises:
        UnsupportedHierarchyQueryError: If ``models="all"`` and the parent
            type has no association map.
    """
    if config_for(record) is None or is_new(record):
        return [] if compact else {}

    selection = _resolve_models(record, models)
    candidates = sibling_models(record, include_self=True) if selection is None else selection

    own = type(record)
    own_id = _own_id(record)
    result: HierarchyResult = {}
    for model in candidates:
        if not is_hierarchable(model):
            continue
        stmt = siblings_statement(model, record)
        if model is own and not include_self:
            stmt = stmt.where(_primary_key_column(model) != own_id)
        result[model] = list((await session.scalars(stmt)).all())
    return _flatten(result, compact)


async def descendants(
    session: AsyncSession,
    record: Any,
    *,
    include_self: bool = False,
    models: ModelSelector = "all",
    compact: bool = False,
) -> HierarchyResult | list[Any]:
    """Return every record below ``record``, per class.

    ``"all"`` expands to ``descendant_models(record, include_self=True)``.
    A root is matched through the root reference columns; other records
    through a separator-anchored prefix match on the ancestors path, so
    ``Task|1`` never matches rows below ``Task|10``.
    """
    if config_for(record) is None or is_new(record):
        return [] if compact else {}

    selection = _resolve_models(record, models)
    candidates = (
        descendant_models(record, include_self=True) if selection is None else selection
    )

    own = type(record)
    own_id = _own_id(record)
    result: HierarchyResult = {}
    for model in candidates:
        if not is_hierarchable(model):
            continue
        clause = _descendant_clause(model, record, use_root=True)
        if model is own:
            pk = _primary_key_column(model)
            clause = or_(clause, pk == own_id) if include_self else clause & (pk != own_id)
        rows = (await session.scalars(select(model).where(clause))).all()
        result[model] = list(rows)

    _lazy.debug(
        lambda: f"Descendants of {token_for(record)}: "
        + ", ".join(f"{m.__name__}={len(r)}" for m, r in result.items())
    )
    return _flatten(result, compact)


__all__ = [
    "HierarchyResult",
    "ModelSelector",
    "ancestor_models",
    "ancestors",
    "children",
    "descendant_models",
    "descendants",
    "descendants_statement",
    "full_path",
    "full_path_reified",
    "is_root",
    "parent",
    "parent_ref",
    "path_for",
    "root",
    "root_ref",
    "sibling_models",
    "siblings",
    "siblings_statement",
]
