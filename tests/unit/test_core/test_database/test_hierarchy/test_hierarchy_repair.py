"""Tests for explicit subtree repair after a record was moved."""

from __future__ import annotations

import logging

import pytest

from materialized_hierarchy.core.database.hierarchy import rebuild_hierarchy
from materialized_hierarchy.core.database.hierarchy.registry import HierarchyRef
from tests.fixtures.hierarchy_models import Comment, Kid, Project, Root, Workspace


@pytest.mark.asyncio
async def test_deep_reparent_leaves_descendants_stale(db_session, project_tree):
    """Test moving a task does not touch the rows below it."""
    task = project_tree["task"]
    subtask = project_tree["subtask"]
    other_project = Project(name="other")
    db_session.add(other_project)
    await db_session.flush()

    task.project = other_project
    await db_session.flush()

    assert task.hierarchy_ancestors_path == "Project|2"
    assert subtask.hierarchy_ancestors_path == "Project|1/Task|1"
    assert subtask.hierarchy_root_ref == HierarchyRef("Project", "1")


@pytest.mark.asyncio
async def test_rebuild_repairs_moved_subtree(db_session, project_tree):
    """Test rebuild_hierarchy rewrites every stale descendant.

    Validates:
    - descendants are recomputed after their (already repaired) parents
    - the return value counts records whose stored fields changed
    - the repaired values are flushed to the database
    """
    task = project_tree["task"]
    subtask = project_tree["subtask"]
    comment = project_tree["comment"]
    task_comment = project_tree["task_comment"]
    other_project = Project(name="other")
    db_session.add(other_project)
    await db_session.flush()
    task.project = other_project
    await db_session.flush()

    changed = await task.rebuild_hierarchy(db_session)

    assert changed == 3
    assert subtask.hierarchy_ancestors_path == "Project|2/Task|1"
    assert subtask.hierarchy_root_ref == HierarchyRef("Project", "2")
    assert comment.hierarchy_ancestors_path == "Project|2/Task|1/Task|3"
    assert comment.hierarchy_root_ref == HierarchyRef("Project", "2")
    assert task_comment.hierarchy_ancestors_path == "Project|2/Task|1"

    await db_session.refresh(comment)
    assert comment.hierarchy_ancestors_path == "Project|2/Task|1/Task|3"

    moved = await other_project.get_hierarchy_descendants(
        db_session, models=[Comment], compact=True
    )
    assert sorted(c.id for c in moved) == [1, 2]


@pytest.mark.asyncio
async def test_rebuild_is_idempotent(db_session, root_chain):
    """Test rebuilding an up-to-date subtree changes nothing."""
    root, _, _ = root_chain

    assert await rebuild_hierarchy(db_session, root) == 0
    assert await rebuild_hierarchy(db_session, root) == 0


@pytest.mark.asyncio
async def test_rebuild_after_root_change(db_session, root_chain, caplog):
    """Test repairing a Root -> Parent -> Kid chain after moving the parent."""
    _, parent, kid = root_chain
    new_root = Root(name="new")
    db_session.add(new_root)
    await db_session.flush()
    parent.root = new_root
    await db_session.flush()

    with caplog.at_level(logging.INFO, logger="materialized_hierarchy"):
        changed = await rebuild_hierarchy(db_session, parent)

    assert changed == 1
    assert kid.hierarchy_ancestors_path == "Root|2/Parent|1"
    assert kid.hierarchy_root_ref == HierarchyRef("Root", "2")
    assert "Rebuilt hierarchy below Parent|1: 1 record(s) changed" in caplog.text


@pytest.mark.asyncio
async def test_rebuild_ignores_unsaved_and_plain_records(db_session):
    """Test records without an id or configuration are left alone."""
    assert await rebuild_hierarchy(db_session, Kid(name="draft")) == 0
    assert await rebuild_hierarchy(db_session, Workspace(name="plain")) == 0
