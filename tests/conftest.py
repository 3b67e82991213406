"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing across the entire test suite.
Fixtures are organized by category to make them easy to discover and extend.

Organization:
    - Database Fixtures: SQLAlchemy engine and session on in-memory SQLite
    - Settings Fixtures: Cache isolation for pydantic-settings loaders
    - Hierarchy Fixtures: Small pre-built trees of the test models

When adding new features:
    1. Add fixtures to the appropriate section below
    2. Use @pytest.fixture with clear docstrings
    3. Use scopes appropriately (function, class, module, session)
    4. Make fixtures composable (fixtures can depend on other fixtures)
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from materialized_hierarchy.core.database import Base
from materialized_hierarchy.core.settings import clear_all_caches
from tests.fixtures.hierarchy_models import Comment, Kid, Milestone, Parent, Project, Root, Task

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

# Tests must not pick up a developer's conf/ directory
os.environ.setdefault("HIERARCHY_CONFIG_DIR", "/nonexistent-hierarchy-conf")
os.environ.setdefault("LOGGING_CONFIG_DIR", "/nonexistent-logging-conf")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    This fixture creates a fresh in-memory database for each test that needs it.
    The database is automatically cleaned up after the test completes.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session with automatic table creation and cleanup.

    This fixture:
    1. Creates all tables defined in Base.metadata
    2. Provides a session for database operations
    3. Automatically rolls back transactions after each test
    4. Cleans up tables after the test

    Args:
        db_engine: Async SQLAlchemy engine fixture.

    Yields:
        Async database session for testing.

    Example:
        async def test_create_project(db_session):
            project = Project(name="Apollo")
            db_session.add(project)
            await db_session.flush()
            assert project.hierarchy_ancestors_path is None
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def clean_settings() -> Iterator[None]:
    """Clear the cached settings before and after the test.

    Use together with ``monkeypatch.setenv`` to exercise environment driven
    configuration without leaking it into other tests.
    """
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Hierarchy Fixtures
# ============================================================================


@pytest.fixture
async def root_chain(db_session: AsyncSession) -> tuple[Root, Parent, Kid]:
    """Persisted Root|1 -> Parent|1 -> Kid|1 chain.

    Returns:
        Tuple of (root, parent, kid), flushed but not committed.
    """
    root = Root(name="root")
    parent = Parent(name="parent", root=root)
    kid = Kid(name="kid", parent=parent)
    db_session.add_all([root, parent, kid])
    await db_session.flush()
    return root, parent, kid


@pytest.fixture
async def project_tree(db_session: AsyncSession) -> dict[str, object]:
    """Persisted project tree used by the traversal tests.

    Layout::

        Project|1
        ├── Task|1 (task)
        │   ├── Task|3 (subtask)
        │   │   └── Comment|1 (comment)
        │   └── Comment|2 (task_comment)
        ├── Task|2 (other_task)
        └── Milestone|<uuid> (milestone)

    Returns:
        Mapping of the names above to their instances.
    """
    project = Project(name="Apollo")
    task = Task(title="design", project=project)
    other_task = Task(title="build", project=project)
    milestone = Milestone(label="alpha", project=project)
    db_session.add_all([project, task, other_task, milestone])
    await db_session.flush()

    subtask = Task(title="sketch", parent_task=task)
    db_session.add(subtask)
    await db_session.flush()

    comment = Comment(body="looks good", task=subtask)
    task_comment = Comment(body="on it", task=task)
    db_session.add_all([comment, task_comment])
    await db_session.flush()

    return {
        "project": project,
        "task": task,
        "other_task": other_task,
        "subtask": subtask,
        "milestone": milestone,
        "comment": comment,
        "task_comment": task_comment,
    }
