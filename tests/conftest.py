"""
Pytest configuration and shared fixtures

The reference scenario is one event scope with four workspaces:

    R  Main Event         ROOT
    D  Operations         DEPARTMENT  (operations)
    C  Catering           COMMITTEE   (operations)
    T  Catering Crew      TEAM        (operations)

and memberships m1 (holder of OPERATIONS_MANAGER on D), m2 (a regular
member of D), m3 (holder of CATERING_LEAD on C).
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from tests.helpers import SCOPE, make_membership, make_node
from workspace_governance.governance import WorkspaceGovernance
from workspace_governance.hierarchy.models import (
    TeamMembership,
    WorkspaceNode,
    WorkspaceRole,
    WorkspaceType,
)
from workspace_governance.hierarchy.policy import HierarchyPolicy
from workspace_governance.hierarchy.store import InMemoryNodeStore, SQLiteNodeStore
from workspace_governance.kernel.time import TestTimeProvider


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def test_time() -> TestTimeProvider:
    """Controllable clock pinned to 2025-01-15 12:00 UTC"""
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> HierarchyPolicy:
    """Default five-department policy"""
    return HierarchyPolicy()


@pytest.fixture
def event_nodes() -> list[WorkspaceNode]:
    return [
        make_node("R", workspace_type=WorkspaceType.ROOT, name="Main Event"),
        make_node(
            "D",
            parent_id="R",
            workspace_type=WorkspaceType.DEPARTMENT,
            department_id="operations",
            name="Operations",
        ),
        make_node(
            "C",
            parent_id="D",
            workspace_type=WorkspaceType.COMMITTEE,
            department_id="operations",
            name="Catering",
        ),
        make_node(
            "T",
            parent_id="C",
            workspace_type=WorkspaceType.TEAM,
            department_id="operations",
            name="Catering Crew",
        ),
    ]


@pytest.fixture
def event_memberships() -> list[TeamMembership]:
    return [
        make_membership("m1", "D", WorkspaceRole.OPERATIONS_MANAGER, user_id="alice"),
        make_membership("m2", "D", WorkspaceRole.EVENT_COORDINATOR, user_id="bob"),
        make_membership("m3", "C", WorkspaceRole.CATERING_LEAD, user_id="carol"),
    ]


@pytest.fixture
def memory_store(
    event_nodes: list[WorkspaceNode], event_memberships: list[TeamMembership]
) -> InMemoryNodeStore:
    """In-memory store seeded with the reference scenario"""
    return InMemoryNodeStore({SCOPE: event_nodes}, event_memberships)


@pytest.fixture
def governance(
    memory_store: InMemoryNodeStore, policy: HierarchyPolicy, test_time: TestTimeProvider
) -> WorkspaceGovernance:
    return WorkspaceGovernance(memory_store, policy=policy, time_provider=test_time)


@pytest.fixture
def sqlite_store(temp_db: Path, test_time: TestTimeProvider) -> SQLiteNodeStore:
    """Fresh SQLite store for each test"""
    return SQLiteNodeStore(temp_db, time_provider=test_time)
