"""Type registry and polymorphic references.

Paths and reference columns store type names as plain strings. The registry
turns those names back into mapped classes. Hierarchable classes register
themselves when SQLAlchemy instruments them; other mapped classes (for
example a plain parent model that is not hierarchable itself) are found
through the declarative registries of the hierarchable ones.

Lookups never raise: an unknown or renamed type yields None and traversal
code skips it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

from materialized_hierarchy.core.database.hierarchy.config import config_for
from materialized_hierarchy.core.database.hierarchy.path import (
    DEFAULT_RECORD_SEPARATOR,
    decode_token,
    encode_token,
)
from materialized_hierarchy.core.database.inspection import get_primary_key

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import registry as DeclarativeRegistry

    from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HierarchyRef:
    """Polymorphic (type name, identifier) reference.

    Identifiers are kept in their stored string form so references to
    integer and UUID keyed types compare the same way.
    """

    type_name: str
    id: str

    @classmethod
    def from_token(
        cls, token: str, record_separator: str = DEFAULT_RECORD_SEPARATOR
    ) -> HierarchyRef:
        type_name, identifier = decode_token(token, record_separator)
        return cls(type_name, identifier)

    @classmethod
    def from_columns(cls, type_name: str | None, identifier: str | None) -> HierarchyRef | None:
        """Build a reference from a type/id column pair; None if either is empty."""
        if not type_name or identifier is None:
            return None
        return cls(type_name, str(identifier))

    def token(self, record_separator: str = DEFAULT_RECORD_SEPARATOR) -> str:
        return encode_token(self.type_name, self.id, record_separator)

    def __str__(self) -> str:
        return self.token()


class TypeRegistry:
    """Registry mapping type names to mapped classes.

    Example:
        registry = TypeRegistry()
        registry.register(Project)
        registry.safe_lookup("Project")  # Project
        registry.safe_lookup("Renamed")  # None
    """

    def __init__(self) -> None:
        self._types: dict[str, type] = {}
        self._declarative_registries: list[DeclarativeRegistry] = []

    def register(self, cls: type, declarative_registry: DeclarativeRegistry | None = None) -> None:
        """Register a class under its ``__name__``.

        Args:
            cls: Mapped class.
            declarative_registry: Registry the class is mapped in; searched
                later for non-hierarchable classes referenced by name.
        """
        name = cls.__name__
        existing = self._types.get(name)
        if existing is not None and existing is not cls:
            logger.warning(
                "Hierarchy type name %s re-registered; %s.%s replaces %s.%s",
                name,
                cls.__module__,
                cls.__qualname__,
                existing.__module__,
                existing.__qualname__,
            )
        self._types[name] = cls
        if declarative_registry is not None and not any(
            reg is declarative_registry for reg in self._declarative_registries
        ):
            self._declarative_registries.append(declarative_registry)

    def unregister(self, name: str) -> bool:
        """Remove a registered type name.

        Returns:
            True if the name was registered.
        """
        return self._types.pop(name, None) is not None

    def safe_lookup(self, name: str | None) -> type | None:
        """Return the class registered as ``name`` or None.

        Falls back to searching the known declarative registries, so plain
        mapped classes used as parents are found too.
        """
        if not name:
            return None
        cls = self._types.get(name)
        if cls is not None:
            return cls
        for declarative_registry in self._declarative_registries:
            for mapper in declarative_registry.mappers:
                if mapper.class_.__name__ == name:
                    return mapper.class_
        return None

    def hierarchable_types(self) -> list[type]:
        """Registered classes that carry a hierarchy configuration."""
        return [cls for cls in self._types.values() if config_for(cls) is not None]

    def names(self) -> list[str]:
        return list(self._types)

    def clear(self) -> None:
        self._types.clear()
        self._declarative_registries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


default_registry = TypeRegistry()


def ref_for(record: Any) -> HierarchyRef | None:
    """Return the reference of a record, or None until it has an identifier."""
    if record is None:
        return None
    pk = get_primary_key(record)
    if not pk or any(value is None for value in pk):
        return None
    return HierarchyRef(type(record).__name__, str(pk[0]))


def token_for(record: Any, config: HierarchyConfig | None = None) -> str:
    """Encode a record as a path token; ``""`` for records without an id.

    Args:
        record: Mapped instance.
        config: Configuration supplying the record separator. Defaults to
            the record's own configuration, then the default separator.
    """
    ref = ref_for(record)
    if ref is None:
        return ""
    config = config or config_for(record)
    separator = config.record_separator if config else DEFAULT_RECORD_SEPARATOR
    return ref.token(separator)


def coerce_identifier(cls: type, identifier: str) -> Any:
    """Convert a stored string identifier to ``cls``'s primary key type.

    Raises:
        ValueError: If the identifier cannot be converted.
    """
    column = sa_inspect(cls).primary_key[0]
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return identifier
    if isinstance(identifier, python_type):
        return identifier
    return python_type(identifier)


async def fetch(
    session: AsyncSession,
    ref: HierarchyRef | None,
    registry: TypeRegistry | None = None,
) -> Any | None:
    """Load the record a reference points to.

    Unknown type names and unparsable identifiers are logged at WARNING and
    yield None. A missing row also yields None.
    """
    if ref is None:
        return None
    registry = registry or default_registry
    cls = registry.safe_lookup(ref.type_name)
    if cls is None:
        logger.warning("Unknown hierarchy type %s in reference %s", ref.type_name, ref)
        return None
    try:
        identifier = coerce_identifier(cls, ref.id)
    except (TypeError, ValueError):
        logger.warning("Unparsable identifier %r for hierarchy type %s", ref.id, ref.type_name)
        return None
    return await session.get(cls, identifier)


__all__ = [
    "HierarchyRef",
    "TypeRegistry",
    "coerce_identifier",
    "default_registry",
    "fetch",
    "ref_for",
    "token_for",
]
