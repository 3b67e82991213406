"""Materialized ancestry paths for heterogeneous record hierarchies.

Records of different types (Project, Task, Comment, ...) form one tree. Each
record stores its parent reference, its root reference, and the encoded path
of all its ancestors, so hierarchy lookups become equality or prefix
queries:

    Project|1/Task|7/Task|12

Components:
    - Path codec: encode_token, decode_token, encode_path, decode_path,
      escape_like and the HierarchyPath value object
    - HierarchyConfig: per-type parent source, associations and separators
    - TypeRegistry: type name to class lookup that never raises
    - resolve_parent / hierarchy_parent_changed: parent resolution and
      change detection
    - set_hierarchy_parent, set_hierarchy_root, set_hierarchy_ancestors_path:
      the three update stages, run automatically on flush
    - ancestors, parent, root, children, siblings, descendants: traversal
    - rebuild_hierarchy: explicit repair of a moved subtree
    - HierarchableMixin: columns, flush wiring and instance methods

Example:
    >>> from materialized_hierarchy.core.database import Base, IntegerPKMixin
    >>> from materialized_hierarchy.core.database.hierarchy import (
    ...     HierarchableMixin,
    ...     HierarchyConfig,
    ... )
    >>>
    >>> class Comment(Base, IntegerPKMixin, HierarchableMixin):
    ...     __tablename__ = "comments"
    ...     __hierarchy__ = HierarchyConfig(parent_source="task")
    ...     task_id: Mapped[int] = mapped_column(ForeignKey("tasks.id"))
    ...     task: Mapped[Task] = relationship(back_populates="comments")
    >>>
    >>> ancestors = await comment.get_hierarchy_ancestors(session)

Note:
    - Separators must never appear inside type names or identifiers
    - Changing separators invalidates every stored path
"""

from materialized_hierarchy.core.database.hierarchy.associations import (
    child_associations,
    children_models,
    discover_relationships,
)
from materialized_hierarchy.core.database.hierarchy.changes import (
    hierarchy_parent_changed,
    persisted_parent_ref,
)
from materialized_hierarchy.core.database.hierarchy.config import (
    ChildAssociation,
    HierarchyConfig,
    ParentSource,
    config_for,
    is_hierarchable,
)
from materialized_hierarchy.core.database.hierarchy.mixins import HierarchableMixin
from materialized_hierarchy.core.database.hierarchy.path import (
    DEFAULT_PATH_SEPARATOR,
    DEFAULT_RECORD_SEPARATOR,
    HierarchyPath,
    decode_path,
    decode_token,
    encode_path,
    encode_token,
    escape_like,
)
from materialized_hierarchy.core.database.hierarchy.registry import (
    HierarchyRef,
    TypeRegistry,
    coerce_identifier,
    default_registry,
    fetch,
    ref_for,
    token_for,
)
from materialized_hierarchy.core.database.hierarchy.repair import rebuild_hierarchy
from materialized_hierarchy.core.database.hierarchy.resolver import resolve_parent
from materialized_hierarchy.core.database.hierarchy.traversal import (
    ancestor_models,
    ancestors,
    children,
    descendant_models,
    descendants,
    descendants_statement,
    full_path,
    full_path_reified,
    parent,
    path_for,
    root,
    sibling_models,
    siblings,
    siblings_statement,
)
from materialized_hierarchy.core.database.hierarchy.updater import (
    apply_hierarchy_fields,
    set_hierarchy_ancestors_path,
    set_hierarchy_parent,
    set_hierarchy_root,
)

__all__ = [
    "DEFAULT_PATH_SEPARATOR",
    "DEFAULT_RECORD_SEPARATOR",
    "ChildAssociation",
    "HierarchableMixin",
    "HierarchyConfig",
    "HierarchyPath",
    "HierarchyRef",
    "ParentSource",
    "TypeRegistry",
    "ancestor_models",
    "ancestors",
    "apply_hierarchy_fields",
    "child_associations",
    "children",
    "children_models",
    "coerce_identifier",
    "config_for",
    "decode_path",
    "decode_token",
    "default_registry",
    "descendant_models",
    "descendants",
    "descendants_statement",
    "discover_relationships",
    "encode_path",
    "encode_token",
    "escape_like",
    "fetch",
    "full_path",
    "full_path_reified",
    "hierarchy_parent_changed",
    "is_hierarchable",
    "parent",
    "path_for",
    "persisted_parent_ref",
    "rebuild_hierarchy",
    "ref_for",
    "resolve_parent",
    "root",
    "set_hierarchy_ancestors_path",
    "set_hierarchy_parent",
    "set_hierarchy_root",
    "sibling_models",
    "siblings",
    "siblings_statement",
    "token_for",
]
