"""Tests for hierarchy traversal queries.

All tests use the ``project_tree`` fixture::

    Project|1
    ├── Task|1 (task)
    │   ├── Task|3 (subtask)
    │   │   └── Comment|1 (comment)
    │   └── Comment|2 (task_comment)
    ├── Task|2 (other_task)
    └── Milestone|<uuid> (milestone)
"""

from __future__ import annotations

import logging

import pytest

from materialized_hierarchy.core.database.exceptions import UnsupportedHierarchyQueryError
from materialized_hierarchy.core.database.hierarchy import traversal
from tests.fixtures.hierarchy_models import (
    Comment,
    Milestone,
    Note,
    Project,
    Task,
    Workspace,
)


def ids(records):
    return sorted(str(record.id) for record in records)


# ============================================================================
# Paths and models (no I/O)
# ============================================================================


@pytest.mark.asyncio
async def test_full_path_and_path_for(project_tree):
    """Test full_path includes the own token and path_for skips unsaved records."""
    project = project_tree["project"]
    task = project_tree["task"]
    comment = project_tree["comment"]

    assert traversal.full_path(comment) == "Project|1/Task|1/Task|3/Comment|1"
    assert traversal.full_path(project) == "Project|1"
    assert traversal.full_path(Comment()) == ""
    assert traversal.path_for([project, task, Task(title="draft")]) == "Project|1/Task|1"
    assert Task.hierarchy_path_for([project, task]) == "Project|1/Task|1"


@pytest.mark.asyncio
async def test_ancestor_models(project_tree):
    """Test distinct ancestor classes in path order."""
    comment = project_tree["comment"]

    assert traversal.ancestor_models(comment) == [Project, Task]
    assert comment.hierarchy_ancestor_models(include_self=True) == [Project, Task, Comment]
    assert traversal.ancestor_models(project_tree["project"]) == []


@pytest.mark.unit
class TestDescendantModels:
    """Test the breadth-first closure of the association map."""

    def test_self_referential_type_terminates(self):
        """Test Task reaches itself through subtasks and still terminates."""
        assert traversal.descendant_models(Task) == [Comment]
        assert traversal.descendant_models(Task, include_self=True) == [Task, Comment]

    def test_root_type_without_self(self):
        """Test the starting type is listed only when requested."""
        models = traversal.descendant_models(Project)

        assert Project not in models
        assert set(models) == {Task, Milestone, Comment}
        assert traversal.descendant_models(Project, include_self=True)[0] is Project

    def test_leaf_and_plain_types(self):
        """Test leaves have no descendant models and plain classes none at all."""
        assert traversal.descendant_models(Comment) == []
        assert traversal.descendant_models(Comment, include_self=True) == [Comment]
        assert traversal.descendant_models(Workspace) == []


@pytest.mark.asyncio
async def test_sibling_models(project_tree):
    """Test sibling models come from the parent's association map."""
    task = project_tree["task"]
    project = project_tree["project"]

    assert set(traversal.sibling_models(task)) == {Task, Milestone}
    assert traversal.sibling_models(project) == []
    assert project.hierarchy_sibling_models(include_self=True) == [Project]


# ============================================================================
# Upward queries
# ============================================================================


@pytest.mark.asyncio
async def test_ancestors(db_session, project_tree):
    """Test ancestors are loaded root first and filtered by models."""
    project = project_tree["project"]
    task = project_tree["task"]
    subtask = project_tree["subtask"]
    comment = project_tree["comment"]

    assert await traversal.ancestors(db_session, comment) == [project, task, subtask]
    assert await comment.get_hierarchy_ancestors(db_session, include_self=True) == [
        project,
        task,
        subtask,
        comment,
    ]
    assert await traversal.ancestors(db_session, comment, models=[Task]) == [task, subtask]
    assert await traversal.ancestors(db_session, comment, models=["Project"]) == [project]
    assert await traversal.ancestors(db_session, comment, models="this") == []
    assert await traversal.ancestors(db_session, project) == []


@pytest.mark.asyncio
async def test_single_class_models_selector(db_session, project_tree):
    """Test a bare class works like a one-element models sequence."""
    project = project_tree["project"]
    task = project_tree["task"]
    subtask = project_tree["subtask"]
    comment = project_tree["comment"]

    assert await traversal.ancestors(db_session, comment, models=Task) == [task, subtask]
    assert await traversal.ancestors(db_session, comment, models="Project") == [project]
    assert await traversal.children(db_session, project, models=Milestone) == {
        Milestone: [project_tree["milestone"]]
    }
    assert ids(await traversal.descendants(db_session, project, models=Comment, compact=True)) == [
        "1",
        "2",
    ]


@pytest.mark.asyncio
async def test_ancestors_skip_unknown_types(db_session, project_tree, caplog):
    """Test tokens of unknown types are skipped with a warning."""
    project = project_tree["project"]
    comment = project_tree["comment"]
    comment.hierarchy_ancestors_path = "Ghost|9/Project|1"

    with caplog.at_level(logging.WARNING):
        assert await traversal.ancestors(db_session, comment) == [project]
        assert traversal.ancestor_models(comment) == [Project]

    assert "Unknown hierarchy type Ghost" in caplog.text


@pytest.mark.asyncio
async def test_parent_and_root(db_session, project_tree):
    """Test persisted parent and root lookups."""
    project = project_tree["project"]
    subtask = project_tree["subtask"]
    comment = project_tree["comment"]

    assert await comment.get_hierarchy_parent(db_session) is subtask
    assert await traversal.parent(db_session, project) is None
    assert await comment.get_hierarchy_root(db_session) is project
    assert await traversal.root(db_session, project) is None


@pytest.mark.asyncio
async def test_parent_reflects_unsaved_reassignment(db_session, project_tree):
    """Test parent() returns the in-memory parent before flush."""
    task = project_tree["task"]
    comment = project_tree["comment"]

    comment.task = task

    assert await traversal.parent(db_session, comment) is task


@pytest.mark.asyncio
async def test_full_path_reified(db_session, project_tree):
    """Test breadcrumb pairs along the full path."""
    project = project_tree["project"]
    task = project_tree["task"]
    subtask = project_tree["subtask"]

    assert await subtask.get_hierarchy_full_path_reified(db_session) == [
        (Project, project),
        (Task, task),
        (Task, subtask),
    ]


# ============================================================================
# Downward and lateral queries
# ============================================================================


@pytest.mark.asyncio
async def test_children(db_session, project_tree):
    """Test direct children per association, filtered by models."""
    project = project_tree["project"]
    task = project_tree["task"]

    result = await project.get_hierarchy_children(db_session)

    assert set(result) == {Task, Milestone}
    assert ids(result[Task]) == ["1", "2"]
    assert result[Milestone] == [project_tree["milestone"]]

    assert await traversal.children(
        db_session, project, models=[Milestone], compact=True
    ) == [project_tree["milestone"]]

    task_children = await traversal.children(db_session, task)
    assert task_children == {Task: [project_tree["subtask"]], Comment: [project_tree["task_comment"]]}

    with_self = await traversal.children(db_session, task, include_self=True, models="this")
    assert set(with_self) == {Task}
    assert ids(with_self[Task]) == ["1", "3"]


@pytest.mark.asyncio
async def test_children_of_unsaved_record(db_session):
    """Test unsaved records have no children."""
    draft = Project(name="draft")

    assert await traversal.children(db_session, draft) == {}
    assert await traversal.children(db_session, draft, include_self=True, compact=True) == [draft]


@pytest.mark.asyncio
async def test_siblings(db_session, project_tree):
    """Test siblings across all child types of the parent."""
    task = project_tree["task"]
    other_task = project_tree["other_task"]
    milestone = project_tree["milestone"]

    result = await task.get_hierarchy_siblings(db_session)

    assert result == {Task: [other_task], Milestone: [milestone]}
    assert await traversal.siblings(db_session, milestone, models="this") == {Milestone: []}

    flat = await traversal.siblings(db_session, task, include_self=True, models=[Task], compact=True)
    assert ids(flat) == ["1", "2"]


@pytest.mark.asyncio
async def test_root_siblings_are_other_roots(db_session, project_tree):
    """Test the siblings of a root are the other roots of its type."""
    project = project_tree["project"]
    other = Project(name="other")
    db_session.add(other)
    await db_session.flush()

    assert await traversal.siblings(db_session, project) == {Project: [other]}


@pytest.mark.asyncio
async def test_siblings_under_plain_parent(db_session):
    """Test "all" siblings raise when the parent has no association map."""
    workspace = Workspace(name="w")
    first = Note(text="a", workspace=workspace)
    second = Note(text="b", workspace=workspace)
    db_session.add_all([workspace, first, second])
    await db_session.flush()

    with pytest.raises(UnsupportedHierarchyQueryError) as exc_info:
        await traversal.siblings(db_session, first)

    assert exc_info.value.parent_type == "Workspace"
    assert await traversal.siblings(db_session, first, models="this") == {Note: [second]}


@pytest.mark.asyncio
async def test_descendants_of_root(db_session, project_tree):
    """Test a root matches its whole tree through the root reference."""
    project = project_tree["project"]

    result = await project.get_hierarchy_descendants(db_session)

    assert result[Project] == []
    assert ids(result[Task]) == ["1", "2", "3"]
    assert result[Milestone] == [project_tree["milestone"]]
    assert ids(result[Comment]) == ["1", "2"]
    assert len(await traversal.descendants(db_session, project, compact=True)) == 6

    assert await traversal.descendants(
        db_session, project, include_self=True, models="this"
    ) == {Project: [project]}


@pytest.mark.asyncio
async def test_descendants_of_inner_record(db_session, project_tree):
    """Test an inner record matches through its path prefix."""
    task = project_tree["task"]
    other_task = project_tree["other_task"]

    result = await traversal.descendants(db_session, task)

    assert set(result) == {Task, Comment}
    assert result[Task] == [project_tree["subtask"]]
    assert ids(result[Comment]) == ["1", "2"]

    flat = await traversal.descendants(
        db_session, task, include_self=True, models=[Task], compact=True
    )
    assert ids(flat) == ["1", "3"]
    assert await traversal.descendants(db_session, other_task, compact=True) == []


@pytest.mark.asyncio
async def test_descendants_prefix_is_separator_anchored(db_session):
    """Test descendants of Task|1 never include rows below Task|10."""
    project = Project(name="p")
    tasks = [Task(title=f"t{i}", project=project) for i in range(1, 11)]
    db_session.add_all([project, *tasks])
    await db_session.flush()

    first, tenth = tasks[0], tasks[9]
    assert (first.id, tenth.id) == (1, 10)

    below_first = Task(title="below first", parent_task=first)
    below_tenth = Task(title="below tenth", parent_task=tenth)
    db_session.add_all([below_first, below_tenth])
    await db_session.flush()

    assert below_tenth.hierarchy_ancestors_path == "Project|1/Task|10"
    assert await traversal.descendants(db_session, first, models="this", compact=True) == [
        below_first
    ]


@pytest.mark.asyncio
async def test_unsaved_and_plain_records_return_empty(db_session):
    """Test read paths never raise for unsaved or non-hierarchable records."""
    draft = Task(title="draft")

    assert await traversal.descendants(db_session, draft) == {}
    assert await traversal.siblings(db_session, draft, compact=True) == []
    assert await traversal.ancestors(db_session, Workspace(name="w")) == []
    assert await traversal.children(db_session, Workspace(name="w")) == {}


# ============================================================================
# Statement builders
# ============================================================================


@pytest.mark.asyncio
async def test_descendants_statement_is_composable(db_session, project_tree):
    """Test the descendants SELECT can be narrowed further."""
    project = project_tree["project"]

    stmt = Task.hierarchy_descendants_of(project)
    assert ids((await db_session.scalars(stmt)).all()) == ["1", "2", "3"]

    narrowed = stmt.where(Task.title == "sketch")
    assert (await db_session.scalars(narrowed)).all() == [project_tree["subtask"]]

    empty = traversal.descendants_statement(Task, Project(name="draft"))
    assert (await db_session.scalars(empty)).all() == []


@pytest.mark.asyncio
async def test_siblings_statement_includes_record(db_session, project_tree):
    """Test the siblings SELECT matches the shared parent reference."""
    task = project_tree["task"]

    rows = (await db_session.scalars(Task.hierarchy_siblings_of(task))).all()
    assert ids(rows) == ["1", "2"]

    comments = (await db_session.scalars(Comment.hierarchy_siblings_of(task))).all()
    assert comments == []

    plain = traversal.siblings_statement(Workspace, task)
    assert (await db_session.scalars(plain)).all() == []
