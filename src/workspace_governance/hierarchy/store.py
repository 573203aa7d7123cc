"""
Node Store - Persistence contract consumed by the hierarchy engine

The engine owns no records. It reads workspace and membership snapshots
through NodeStore and writes back only role reassignments during a
delegation. Two reference implementations ship with the package:

- InMemoryNodeStore: dict-backed, with write fault injection for tests
- SQLiteNodeStore: file-backed, used by the wsgov CLI

No transaction spans two calls; a delegation's two role writes are
independent (see DelegationEngine).
"""

import asyncio
import sqlite3
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Protocol

from workspace_governance.hierarchy.models import (
    MembershipStatus,
    TeamMembership,
    WorkspaceNode,
    WorkspaceRole,
    WorkspaceStatus,
    WorkspaceType,
)
from workspace_governance.kernel.errors import MembershipNotFound, WorkspaceNotFound
from workspace_governance.kernel.ids import generate_id
from workspace_governance.kernel.metrics import track_store_call
from workspace_governance.kernel.retry import retry_on_sqlite_lock
from workspace_governance.kernel.time import RealTimeProvider, TimeProvider


class NodeStore(Protocol):
    """Read/write operations the engine needs from persistence"""

    async def list_nodes(self, scope_id: str) -> list[WorkspaceNode]:
        """All workspaces of one scope (e.g. one event)"""
        ...

    async def list_active_memberships(
        self, workspace_ids: Iterable[str]
    ) -> list[TeamMembership]:
        """Active memberships on any of the given workspaces"""
        ...

    async def update_membership_role(
        self, membership_id: str, new_role: WorkspaceRole
    ) -> None:
        """Reassign the role of one existing membership"""
        ...


class InMemoryNodeStore:
    """
    Dict-backed NodeStore

    Returns copies, so callers never mutate stored records. Writes can be
    made to fail per membership with fail_updates_for, and on_update is
    called after every committed role write (tests use it to observe the
    state between the two writes of a delegation).
    """

    def __init__(
        self,
        nodes: dict[str, list[WorkspaceNode]] | None = None,
        memberships: Iterable[TeamMembership] = (),
    ) -> None:
        self.nodes: dict[str, list[WorkspaceNode]] = {
            scope: list(scope_nodes) for scope, scope_nodes in (nodes or {}).items()
        }
        self.memberships: dict[str, TeamMembership] = {m.id: m for m in memberships}
        self.fail_updates_for: dict[str, Exception] = {}
        self.update_log: list[tuple[str, WorkspaceRole]] = []
        self.on_update: Callable[[str, WorkspaceRole], None] | None = None

    def add_node(self, scope_id: str, node: WorkspaceNode) -> None:
        self.nodes.setdefault(scope_id, []).append(node)

    def add_membership(self, membership: TeamMembership) -> None:
        self.memberships[membership.id] = membership

    def get_membership(self, membership_id: str) -> TeamMembership:
        if membership_id not in self.memberships:
            raise MembershipNotFound(membership_id)
        return self.memberships[membership_id].model_copy(deep=True)

    @track_store_call("list_nodes")
    async def list_nodes(self, scope_id: str) -> list[WorkspaceNode]:
        return [n.model_copy(deep=True) for n in self.nodes.get(scope_id, [])]

    @track_store_call("list_active_memberships")
    async def list_active_memberships(
        self, workspace_ids: Iterable[str]
    ) -> list[TeamMembership]:
        wanted = set(workspace_ids)
        return [
            m.model_copy(deep=True)
            for m in self.memberships.values()
            if m.workspace_id in wanted and m.is_active()
        ]

    @track_store_call("update_membership_role")
    async def update_membership_role(
        self, membership_id: str, new_role: WorkspaceRole
    ) -> None:
        if membership_id in self.fail_updates_for:
            raise self.fail_updates_for[membership_id]
        if membership_id not in self.memberships:
            raise MembershipNotFound(membership_id)

        self.memberships[membership_id] = self.memberships[membership_id].model_copy(
            update={"role": new_role}
        )
        self.update_log.append((membership_id, new_role))
        if self.on_update is not None:
            self.on_update(membership_id, new_role)


class SQLiteNodeStore:
    """
    SQLite-backed NodeStore

    Schema:
    - workspaces: one row per workspace, scoped by scope_id
    - memberships: one row per (workspace, user) role assignment

    Blocking SQLite calls run in a worker thread; lock contention is
    retried with backoff.
    """

    def __init__(
        self, db_path: str | Path, time_provider: TimeProvider | None = None
    ) -> None:
        self.db_path = Path(db_path)
        self.time_provider = time_provider or RealTimeProvider()
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS workspaces (
                    id TEXT PRIMARY KEY,
                    scope_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    parent_id TEXT,
                    type TEXT,
                    department_id TEXT,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS memberships (
                    id TEXT PRIMARY KEY,
                    workspace_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    status TEXT NOT NULL,
                    joined_at TEXT NOT NULL,
                    user_name TEXT,
                    user_email TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_workspaces_scope ON workspaces(scope_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memberships_workspace "
                "ON memberships(workspace_id)"
            )
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    # Row mapping

    @staticmethod
    def _to_node(row: sqlite3.Row) -> WorkspaceNode:
        return WorkspaceNode(
            id=row["id"],
            name=row["name"],
            parent_id=row["parent_id"],
            type=WorkspaceType(row["type"]) if row["type"] else None,
            department_id=row["department_id"],
            status=WorkspaceStatus(row["status"]),
        )

    @staticmethod
    def _to_membership(row: sqlite3.Row) -> TeamMembership:
        return TeamMembership(
            id=row["id"],
            workspace_id=row["workspace_id"],
            user_id=row["user_id"],
            role=WorkspaceRole(row["role"]),
            status=MembershipStatus(row["status"]),
            joined_at=datetime.fromisoformat(row["joined_at"]),
            user_name=row["user_name"],
            user_email=row["user_email"],
        )

    # Blocking operations

    @retry_on_sqlite_lock()
    def _select_nodes(self, scope_id: str) -> list[WorkspaceNode]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM workspaces WHERE scope_id = ? ORDER BY created_at, id",
                (scope_id,),
            ).fetchall()
        return [self._to_node(row) for row in rows]

    @retry_on_sqlite_lock()
    def _select_memberships(
        self, workspace_ids: list[str], active_only: bool
    ) -> list[TeamMembership]:
        if not workspace_ids:
            return []
        placeholders = ",".join("?" for _ in workspace_ids)
        query = f"SELECT * FROM memberships WHERE workspace_id IN ({placeholders})"
        params: list[str] = list(workspace_ids)
        if active_only:
            query += " AND status = ?"
            params.append(MembershipStatus.ACTIVE.value)
        query += " ORDER BY joined_at, id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._to_membership(row) for row in rows]

    @retry_on_sqlite_lock()
    def _update_role(self, membership_id: str, new_role: WorkspaceRole) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE memberships SET role = ? WHERE id = ?",
                (new_role.value, membership_id),
            )
            conn.commit()
        if cursor.rowcount == 0:
            raise MembershipNotFound(membership_id)

    @retry_on_sqlite_lock()
    def _insert_workspace(self, scope_id: str, node: WorkspaceNode) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO workspaces
                    (id, scope_id, name, parent_id, type, department_id, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    node.id,
                    scope_id,
                    node.name,
                    node.parent_id,
                    node.type.value if node.type else None,
                    node.department_id,
                    node.status.value,
                    self.time_provider.now().isoformat(),
                ),
            )
            conn.commit()

    @retry_on_sqlite_lock()
    def _insert_membership(self, membership: TeamMembership) -> None:
        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM workspaces WHERE id = ?", (membership.workspace_id,)
            ).fetchone()
            if exists is None:
                raise WorkspaceNotFound(membership.workspace_id)
            conn.execute(
                """
                INSERT INTO memberships
                    (id, workspace_id, user_id, role, status, joined_at, user_name, user_email)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    membership.id,
                    membership.workspace_id,
                    membership.user_id,
                    membership.role.value,
                    membership.status.value,
                    membership.joined_at.isoformat(),
                    membership.user_name,
                    membership.user_email,
                ),
            )
            conn.commit()

    @retry_on_sqlite_lock()
    def _select_membership(self, membership_id: str) -> TeamMembership:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM memberships WHERE id = ?", (membership_id,)
            ).fetchone()
        if row is None:
            raise MembershipNotFound(membership_id)
        return self._to_membership(row)

    # NodeStore

    @track_store_call("list_nodes")
    async def list_nodes(self, scope_id: str) -> list[WorkspaceNode]:
        return await asyncio.to_thread(self._select_nodes, scope_id)

    @track_store_call("list_active_memberships")
    async def list_active_memberships(
        self, workspace_ids: Iterable[str]
    ) -> list[TeamMembership]:
        return await asyncio.to_thread(self._select_memberships, list(workspace_ids), True)

    @track_store_call("update_membership_role")
    async def update_membership_role(
        self, membership_id: str, new_role: WorkspaceRole
    ) -> None:
        await asyncio.to_thread(self._update_role, membership_id, new_role)

    # Record management (CLI seeding; not used by the engine)

    async def create_workspace(
        self,
        scope_id: str,
        name: str,
        workspace_type: WorkspaceType | None,
        parent_id: str | None = None,
        department_id: str | None = None,
    ) -> WorkspaceNode:
        node = WorkspaceNode(
            id=generate_id(),
            name=name,
            parent_id=parent_id,
            type=workspace_type,
            department_id=department_id,
        )
        await asyncio.to_thread(self._insert_workspace, scope_id, node)
        return node

    async def add_member(
        self,
        workspace_id: str,
        user_id: str,
        role: WorkspaceRole,
        user_name: str | None = None,
        user_email: str | None = None,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> TeamMembership:
        membership = TeamMembership(
            id=generate_id(),
            workspace_id=workspace_id,
            user_id=user_id,
            role=role,
            status=status,
            joined_at=self.time_provider.now(),
            user_name=user_name,
            user_email=user_email,
        )
        await asyncio.to_thread(self._insert_membership, membership)
        return membership

    async def get_membership(self, membership_id: str) -> TeamMembership:
        return await asyncio.to_thread(self._select_membership, membership_id)

    async def list_memberships(self, workspace_ids: Iterable[str]) -> list[TeamMembership]:
        """All memberships (any status) on the given workspaces"""
        return await asyncio.to_thread(self._select_memberships, list(workspace_ids), False)
