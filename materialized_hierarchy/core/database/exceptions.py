"""Hierarchy exceptions.

Setup-time problems (bad separators, malformed parent sources) raise
immediately. Read paths deliberately avoid raising for missing data and
return empty results instead; the only read-side exception is the explicit
"not supported" signal for queries that cannot be answered without an
association map.
"""
from __future__ import annotations

from typing import Any


class HierarchyError(Exception):
    """Base exception for hierarchy operations.

    Carries a human-readable message plus a ``details`` dict that is
    appended to ``str(exc)`` for log and debugging output.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize hierarchy error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class HierarchyConfigurationError(HierarchyError):
    """Invalid per-type hierarchy configuration.

    Raised while a model class is being set up, never from traversal calls.
    Typical causes:
    - Empty or identical path/record separators
    - A parent source that is neither a field name nor a callable
    - A child association descriptor without a name
    """

    def __init__(self, message: str, model_name: str | None = None, **details: Any):
        """Initialize configuration error.

        Args:
            message: Error description
            model_name: Name of the model being configured (if known)
            **details: Offending option values
        """
        if model_name:
            details = {"model": model_name, **details}
        super().__init__(message, details=details)


class UnsupportedHierarchyQueryError(HierarchyError):
    """Query that cannot be answered from the configured association map.

    Raised when asking for siblings of every type while the parent's type
    declares no association map. This is distinct from an empty result,
    which means the query ran and found nothing.

    Attributes:
        model_name: Name of the model the query was issued for
        parent_type: Type name of the parent lacking an association map
    """

    def __init__(self, model_name: str, parent_type: str | None):
        """Initialize unsupported query error.

        Args:
            model_name: Name of the queried model
            parent_type: Type name stored in the record's parent reference
        """
        self.model_name = model_name
        self.parent_type = parent_type
        super().__init__(
            f"Cannot list siblings of every type for {model_name}: "
            "parent type has no association map",
            details={"model": model_name, "parent_type": parent_type},
        )

    def __repr__(self) -> str:
        """Repr for debugging."""
        return (
            f"UnsupportedHierarchyQueryError(model={self.model_name!r}, "
            f"parent_type={self.parent_type!r})"
        )


__all__ = [
    "HierarchyConfigurationError",
    "HierarchyError",
    "UnsupportedHierarchyQueryError",
]
