"""Per-type hierarchy configuration.

Each hierarchable model declares one immutable ``HierarchyConfig`` as its
``__hierarchy__`` class attribute. The configuration is validated when the
class is defined, so separator and parent-source mistakes surface at import
time instead of on the first flush.

Example:
    >>> class Task(Base, IntegerPKMixin, HierarchableMixin):
    ...     __tablename__ = "tasks"
    ...     __hierarchy__ = HierarchyConfig(
    ...         parent_source=lambda task: "parent_task" if task.parent_task_id else "project",
    ...         additional_children=("attachments",),
    ...     )
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Literal

from materialized_hierarchy.core.database.exceptions import HierarchyConfigurationError

ParentSelector = Callable[[Any], "str | None"]
DiscoveryFn = Callable[[type], Iterable["ChildAssociation"]]


@dataclass(frozen=True, slots=True)
class ParentSource:
    """Rule naming the attribute that holds a record's parent.

    Exactly one of three variants:
        - ``fixed``: always follow the same relationship attribute
        - ``computed``: call a selector with the record to get the attribute
          name; the selector runs on every resolution and may return None
        - ``none``: the type is always a root

    Example:
        >>> ParentSource.fixed("project").field_for(task)
        'project'
        >>> ParentSource.computed(lambda t: "parent_task" if t.parent_task_id else "project")
    """

    kind: Literal["fixed", "computed", "none"] = "none"
    field_name: str | None = None
    selector: ParentSelector | None = None

    def __post_init__(self) -> None:
        if self.kind not in ("fixed", "computed", "none"):
            raise HierarchyConfigurationError("Unknown parent source kind", kind=self.kind)
        if self.kind == "fixed" and not self.field_name:
            raise HierarchyConfigurationError("Fixed parent source requires a field name")
        if self.kind == "computed" and not callable(self.selector):
            raise HierarchyConfigurationError("Computed parent source requires a callable selector")

    @classmethod
    def fixed(cls, field_name: str) -> ParentSource:
        return cls(kind="fixed", field_name=field_name)

    @classmethod
    def computed(cls, selector: ParentSelector) -> ParentSource:
        return cls(kind="computed", selector=selector)

    @classmethod
    def none(cls) -> ParentSource:
        return cls(kind="none")

    @classmethod
    def coerce(cls, value: ParentSource | str | ParentSelector | None) -> ParentSource:
        """Normalize a string, callable or None into a ParentSource."""
        if isinstance(value, ParentSource):
            return value
        if value is None:
            return cls.none()
        if isinstance(value, str):
            return cls.fixed(value)
        if callable(value):
            return cls.computed(value)
        raise HierarchyConfigurationError(
            "parent_source must be a field name, a callable or None",
            value_type=type(value).__name__,
        )

    @property
    def is_configured(self) -> bool:
        return self.kind != "none"

    def field_for(self, record: Any) -> str | None:
        """Return the attribute name holding ``record``'s parent, if any."""
        if self.kind == "fixed":
            return self.field_name
        if self.kind == "computed":
            return self.selector(record) or None
        return None


@dataclass(frozen=True, slots=True)
class ChildAssociation:
    """One-to-many relationship attribute that may hold child records.

    Attributes:
        name: Relationship attribute on the parent type.
        target: Child class, class name, or None to take it from the
            relationship mapping.
    """

    name: str
    target: type | str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise HierarchyConfigurationError(
                "Child association name must be a non-empty string"
            )

    @classmethod
    def coerce(cls, value: ChildAssociation | str) -> ChildAssociation:
        if isinstance(value, ChildAssociation):
            return value
        if isinstance(value, str):
            return cls(value)
        raise HierarchyConfigurationError(
            "Child associations must be names or ChildAssociation instances",
            value_type=type(value).__name__,
        )


@dataclass(frozen=True)
class HierarchyConfig:
    """Immutable hierarchy configuration for one model class.

    Attributes:
        parent_source: Field name, selector callable, ParentSource or None
            (root type).
        children: Explicit child associations. When non-empty they replace
            discovery entirely.
        additional_children: Associations merged in after explicit or
            discovered ones.
        discover: Callable returning the child associations of a class.
            None uses relationship introspection when
            ``HierarchySettings.discover_children`` is enabled.
        path_separator: Separator between tokens. Defaults from settings.
        record_separator: Separator between type name and id inside a
            token. Defaults from settings.
        like_escape: Escape character for LIKE prefix queries. Defaults
            from settings.

    Raises:
        HierarchyConfigurationError: If separators are empty, identical, or
            collide with the escape character, or if a parent source or
            association descriptor is malformed.
    """

    parent_source: Any = None
    children: tuple[ChildAssociation | str, ...] = ()
    additional_children: tuple[ChildAssociation | str, ...] = ()
    discover: DiscoveryFn | None = None
    path_separator: str | None = None
    record_separator: str | None = None
    like_escape: str | None = None

    def __post_init__(self) -> None:
        from materialized_hierarchy.core.settings import get_hierarchy_settings

        settings = get_hierarchy_settings()
        set_ = object.__setattr__

        set_(self, "parent_source", ParentSource.coerce(self.parent_source))
        set_(self, "children", _coerce_associations(self.children))
        set_(self, "additional_children", _coerce_associations(self.additional_children))
        if self.discover is not None and not callable(self.discover):
            raise HierarchyConfigurationError("discover must be callable")

        path_sep = settings.path_separator if self.path_separator is None else self.path_separator
        record_sep = (
            settings.record_separator if self.record_separator is None else self.record_separator
        )
        escape = settings.like_escape if self.like_escape is None else self.like_escape

        if not path_sep or not record_sep:
            raise HierarchyConfigurationError(
                "Hierarchy separators must be non-empty",
                path_separator=path_sep,
                record_separator=record_sep,
            )
        if path_sep == record_sep:
            raise HierarchyConfigurationError(
                "Path and record separators must differ", separator=path_sep
            )
        if len(escape) != 1 or escape in path_sep or escape in record_sep:
            raise HierarchyConfigurationError(
                "LIKE escape must be a single character not used by either separator",
                like_escape=escape,
            )

        set_(self, "path_separator", path_sep)
        set_(self, "record_separator", record_sep)
        set_(self, "like_escape", escape)

    def with_options(self, **changes: Any) -> HierarchyConfig:
        """Return a validated copy with ``changes`` applied, for subclass overrides."""
        return replace(self, **changes)


def _coerce_associations(
    value: ChildAssociation | str | Iterable[ChildAssociation | str],
) -> tuple[ChildAssociation, ...]:
    if isinstance(value, (str, ChildAssociation)):
        value = (value,)
    return tuple(ChildAssociation.coerce(item) for item in value)


def config_for(target: Any) -> HierarchyConfig | None:
    """Return the HierarchyConfig of a hierarchable class or instance.

    Returns None for anything that does not carry a configuration, which
    read paths treat as "not part of a hierarchy".
    """
    cls = target if isinstance(target, type) else type(target)
    config = getattr(cls, "__hierarchy__", None)
    return config if isinstance(config, HierarchyConfig) else None


def is_hierarchable(target: Any) -> bool:
    return config_for(target) is not None


__all__ = [
    "ChildAssociation",
    "DiscoveryFn",
    "HierarchyConfig",
    "ParentSelector",
    "ParentSource",
    "config_for",
    "is_hierarchable",
]
