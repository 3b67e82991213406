"""Test fixtures for pytest.

This module re-exports the mapped test models for easier importing.
"""

from .hierarchy_models import (
    Comment,
    Kid,
    Milestone,
    Note,
    Parent,
    Project,
    Root,
    Task,
    Workspace,
)

__all__ = [
    "Comment",
    "Kid",
    "Milestone",
    "Note",
    "Parent",
    "Project",
    "Root",
    "Task",
    "Workspace",
]
