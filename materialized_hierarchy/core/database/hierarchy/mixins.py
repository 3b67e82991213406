"""Mixin for models that take part in a materialized hierarchy.

Adds the five persisted hierarchy columns and wires the field updater into
SQLAlchemy's flush, so the parent reference, root reference and ancestors
path stay current without any explicit calls. Instance and class methods
expose the traversal queries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import String, event
from sqlalchemy.orm import Mapped, mapped_column

from materialized_hierarchy.core.database.exceptions import HierarchyConfigurationError
from materialized_hierarchy.core.database.hierarchy import traversal
from materialized_hierarchy.core.database.hierarchy.associations import (
    child_associations,
    children_models,
)
from materialized_hierarchy.core.database.hierarchy.changes import hierarchy_parent_changed
from materialized_hierarchy.core.database.hierarchy.config import HierarchyConfig
from materialized_hierarchy.core.database.hierarchy.path import HierarchyPath
from materialized_hierarchy.core.database.hierarchy.registry import (
    HierarchyRef,
    default_registry,
    token_for,
)
from materialized_hierarchy.core.database.hierarchy.repair import rebuild_hierarchy
from materialized_hierarchy.core.database.hierarchy.updater import apply_hierarchy_fields

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from materialized_hierarchy.core.database.hierarchy.config import ChildAssociation
    from materialized_hierarchy.core.database.hierarchy.traversal import (
        HierarchyResult,
        ModelSelector,
    )


class HierarchableMixin:
    """Mixin for models with a materialized ancestry path.

    Declare the parent source and optional association overrides through
    ``__hierarchy__``. Models without a parent source are roots.

    Example:
        >>> class Project(Base, IntegerPKMixin, HierarchableMixin):
        ...     __tablename__ = "projects"
        ...     tasks: Mapped[list[Task]] = relationship(back_populates="project")
        >>>
        >>> class Task(Base, IntegerPKMixin, HierarchableMixin):
        ...     __tablename__ = "tasks"
        ...     __hierarchy__ = HierarchyConfig(parent_source="project")
        ...     project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"))
        ...     project: Mapped[Project] = relationship(back_populates="tasks")
        >>>
        >>> session.add(Task(project=project))
        >>> await session.flush()
        >>> task.hierarchy_ancestors_path
        'Project|1'
        >>> await project.get_hierarchy_descendants(session, models=[Task], compact=True)
        [<Task 1>]

    Note:
        - Hierarchy columns are written during flush; read them after flushing
        - Moving a record does not update its descendants; call
          ``rebuild_hierarchy`` for that
        - Async methods take the session explicitly
    """

    __allow_unmapped__ = True

    __hierarchy__: ClassVar[HierarchyConfig] = HierarchyConfig()

    hierarchy_parent_type: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Type name of the parent record"
    )
    hierarchy_parent_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Identifier of the parent record"
    )
    hierarchy_root_type: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Type name of the hierarchy root"
    )
    hierarchy_root_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Identifier of the hierarchy root"
    )
    hierarchy_ancestors_path: Mapped[str | None] = mapped_column(
        String(2048), nullable=True, index=True, comment="Encoded ancestor tokens, root first"
    )

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not isinstance(cls.__hierarchy__, HierarchyConfig):
            raise HierarchyConfigurationError(
                "__hierarchy__ must be a HierarchyConfig instance",
                model_name=cls.__name__,
                value_type=type(cls.__hierarchy__).__name__,
            )
        if not cls.__dict__.get("__abstract__", False):
            default_registry.register(cls, getattr(cls, "registry", None))

    # ------------------------------------------------------------------
    # Stored references (no I/O)
    # ------------------------------------------------------------------

    @property
    def hierarchy_parent_ref(self) -> HierarchyRef | None:
        """Persisted parent reference, None for roots."""
        return traversal.parent_ref(self)

    @property
    def hierarchy_root_ref(self) -> HierarchyRef | None:
        """Persisted root reference, None for roots."""
        return traversal.root_ref(self)

    @property
    def is_hierarchy_root(self) -> bool:
        return traversal.is_root(self)

    @property
    def hierarchy_full_path(self) -> str:
        """Ancestors path plus this record's token; ``""`` if unsaved."""
        return traversal.full_path(self)

    @property
    def hierarchy_path(self) -> HierarchyPath:
        """Ancestors path as a HierarchyPath value object."""
        config = self.__hierarchy__
        return HierarchyPath(
            self.hierarchy_ancestors_path,
            path_separator=config.path_separator,
            record_separator=config.record_separator,
        )

    def to_hierarchy_token(self) -> str:
        return token_for(self, self.__hierarchy__)

    @classmethod
    def hierarchy_path_for(cls, records: Sequence[Any]) -> str:
        """Encode ``records`` with this class's separators."""
        return traversal.path_for(records, cls.__hierarchy__)

    @property
    def hierarchy_parent_source(self) -> str | None:
        """Attribute currently selected as the parent source."""
        return self.__hierarchy__.parent_source.field_for(self)

    @property
    def hierarchy_parent_changed(self) -> bool:
        """Whether the effective parent differs from the persisted one.

        May lazy load the parent relationship; use from synchronous ORM code.
        """
        return hierarchy_parent_changed(self)

    # ------------------------------------------------------------------
    # Model introspection (no I/O)
    # ------------------------------------------------------------------

    @classmethod
    def hierarchy_child_associations(cls) -> tuple[ChildAssociation, ...]:
        return child_associations(cls)

    def hierarchy_ancestor_models(self, *, include_self: bool = False) -> list[type]:
        return traversal.ancestor_models(self, include_self=include_self)

    def hierarchy_children_models(self, *, include_self: bool = False) -> list[type]:
        return children_models(type(self), include_self=include_self)

    def hierarchy_descendant_models(self, *, include_self: bool = False) -> list[type]:
        return traversal.descendant_models(self, include_self=include_self)

    def hierarchy_sibling_models(self, *, include_self: bool = False) -> list[type]:
        return traversal.sibling_models(self, include_self=include_self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_hierarchy_parent(self, session: AsyncSession) -> Any | None:
        """Get parent record.

        Reflects an unsaved reassignment of the parent source; otherwise
        loads the persisted parent reference.
        """
        return await traversal.parent(session, self)

    async def get_hierarchy_root(self, session: AsyncSession) -> Any | None:
        return await traversal.root(session, self)

    async def get_hierarchy_ancestors(
        self,
        session: AsyncSession,
        *,
        include_self: bool = False,
        models: ModelSelector = "all",
    ) -> list[Any]:
        """Get ancestors ordered from the root down.

        Args:
            session: Async database session
            include_self: Append this record at the end
            models: "all", "this", a class/name or a sequence of them

        Returns:
            List of ancestor instances
        """
        return await traversal.ancestors(
            session, self, include_self=include_self, models=models
        )

    async def get_hierarchy_children(
        self,
        session: AsyncSession,
        *,
        include_self: bool = False,
        models: ModelSelector = "all",
        compact: bool = False,
    ) -> HierarchyResult | list[Any]:
        return await traversal.children(
            session, self, include_self=include_self, models=models, compact=compact
        )

    async def get_hierarchy_siblings(
        self,
        session: AsyncSession,
        *,
        include_self: bool = False,
        models: ModelSelector = "all",
        compact: bool = False,
    ) -> HierarchyResult | list[Any]:
        """Get records sharing this record's parent.

        Raises:
            UnsupportedHierarchyQueryError: If ``models="all"`` and the
                parent type has no association map.
        """
        return await traversal.siblings(
            session, self, include_self=include_self, models=models, compact=compact
        )

    async def get_hierarchy_descendants(
        self,
        session: AsyncSession,
        *,
        include_self: bool = False,
        models: ModelSelector = "all",
        compact: bool = False,
    ) -> HierarchyResult | list[Any]:
        """Get every record below this one.

        Args:
            session: Async database session
            include_self: Include this record under its own class
            models: "all", "this", a class/name or a sequence of them
            compact: Return one flat list instead of a mapping per class

        Returns:
            Mapping of class to records, or a flat list with ``compact``
        """
        return await traversal.descendants(
            session, self, include_self=include_self, models=models, compact=compact
        )

    async def get_hierarchy_full_path_reified(
        self, session: AsyncSession
    ) -> list[tuple[type, Any]]:
        return await traversal.full_path_reified(session, self)

    async def rebuild_hierarchy(self, session: AsyncSession) -> int:
        """Recompute hierarchy fields of this record and its subtree.

        Returns:
            Number of records whose stored fields changed
        """
        return await rebuild_hierarchy(session, self)

    @classmethod
    def hierarchy_descendants_of(cls, record: Any) -> Select[Any]:
        """Composable SELECT of this class's rows below ``record``."""
        return traversal.descendants_statement(cls, record)

    @classmethod
    def hierarchy_siblings_of(cls, record: Any) -> Select[Any]:
        """Composable SELECT of this class's rows sharing ``record``'s parent."""
        return traversal.siblings_statement(cls, record)


@event.listens_for(HierarchableMixin, "before_insert", propagate=True)
def _hierarchy_before_insert(mapper: Any, connection: Any, target: HierarchableMixin) -> None:
    apply_hierarchy_fields(target, recompute_path=True)


@event.listens_for(HierarchableMixin, "before_update", propagate=True)
def _hierarchy_before_update(mapper: Any, connection: Any, target: HierarchableMixin) -> None:
    # Detect before stage 1 overwrites the persisted parent columns
    changed = hierarchy_parent_changed(target)
    apply_hierarchy_fields(target, recompute_path=changed)


__all__ = [
    "HierarchableMixin",
]
