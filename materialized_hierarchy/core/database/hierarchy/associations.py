"""Child association maps.

The association map of a type lists the one-to-many relationship attributes
that may hold its children. It is assembled from the type's
``HierarchyConfig``:

1. ``children`` when given, otherwise the result of a discovery pass
   (``discover`` if configured, else relationship introspection when
   ``HierarchySettings.discover_children`` is on)
2. ``additional_children`` merged in afterwards

Default discovery keeps every one-to-many relationship without a secondary
table whose target class is itself hierarchable. No naming conventions are
involved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import ONETOMANY

from materialized_hierarchy.core.database.exceptions import HierarchyConfigurationError
from materialized_hierarchy.core.database.hierarchy.config import (
    ChildAssociation,
    config_for,
    is_hierarchable,
)
from materialized_hierarchy.core.database.hierarchy.registry import default_registry

if TYPE_CHECKING:
    from collections.abc import Iterable


def discover_relationships(cls: type) -> tuple[ChildAssociation, ...]:
    """Return the hierarchable one-to-many relationships of ``cls``.

    Example:
        >>> discover_relationships(Project)
        (ChildAssociation(name='tasks', target=<class 'Task'>),
         ChildAssociation(name='milestones', target=<class 'Milestone'>))
    """
    mapper = sa_inspect(cls)
    return tuple(
        ChildAssociation(rel.key, rel.mapper.class_)
        for rel in mapper.relationships
        if rel.direction is ONETOMANY
        and rel.secondary is None
        and is_hierarchable(rel.mapper.class_)
    )


def _resolve_target(cls: type, association: ChildAssociation) -> ChildAssociation:
    mapper = sa_inspect(cls)
    rel = mapper.relationships.get(association.name)
    if rel is None:
        raise HierarchyConfigurationError(
            "Child association is not a relationship",
            model_name=cls.__name__,
            association=association.name,
        )

    target = association.target
    if target is None:
        target = rel.mapper.class_
    elif isinstance(target, str):
        resolved = default_registry.safe_lookup(target)
        if resolved is None:
            raise HierarchyConfigurationError(
                "Unknown child association target",
                model_name=cls.__name__,
                association=association.name,
                target=target,
            )
        target = resolved
    return ChildAssociation(association.name, target)


def child_associations(cls: type) -> tuple[ChildAssociation, ...]:
    """Return the resolved association map of ``cls``.

    Every returned association has a class as its ``target``. Names are
    unique; the first occurrence wins. Non-hierarchable classes have an
    empty map.

    Raises:
        HierarchyConfigurationError: If a configured association does not
            name a relationship or its target cannot be resolved.
    """
    from materialized_hierarchy.core.settings import get_hierarchy_settings

    config = config_for(cls)
    if config is None:
        return ()

    base: Iterable[ChildAssociation]
    if config.children:
        base = config.children
    elif config.discover is not None:
        base = config.discover(cls)
    elif get_hierarchy_settings().discover_children:
        base = discover_relationships(cls)
    else:
        base = ()

    resolved: dict[str, ChildAssociation] = {}
    for association in (*base, *config.additional_children):
        association = ChildAssociation.coerce(association)
        if association.name not in resolved:
            resolved[association.name] = _resolve_target(cls, association)
    return tuple(resolved.values())


def children_models(cls: type, *, include_self: bool = False) -> list[type]:
    """Distinct child classes one association hop away from ``cls``.

    With ``include_self`` the class itself is listed first.
    """
    models: list[type] = [cls] if include_self else []
    for association in child_associations(cls):
        if association.target not in models:
            models.append(association.target)
    return models


__all__ = [
    "child_associations",
    "children_models",
    "discover_relationships",
]
