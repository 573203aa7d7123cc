"""
WorkspaceGovernance - Main façade

The primary interface for reading a scope's workspace hierarchy and
handing responsible roles around. It loads snapshots from a NodeStore,
builds the tree, resolves authority, and runs delegations, so callers
never wire the individual components together themselves.

Example:
    >>> from workspace_governance import WorkspaceGovernance, SQLiteNodeStore
    >>> gov = WorkspaceGovernance(SQLiteNodeStore("workspaces.db"))
    >>> roots = await gov.load_tree("event-2026")
    >>> overview = await gov.authority_overview("event-2026")
    >>> outcome = await gov.delegate_role(
    ...     "event-2026",
    ...     DelegateRole(workspace_id="ws-catering", new_holder_membership_id="m-42"),
    ... )
"""

from workspace_governance.hierarchy.authority import (
    annotate_authority,
    find_holder,
    find_holders,
    find_single_holder_violations,
    resolve_responsible_role,
)
from workspace_governance.hierarchy.commands import CreateSubWorkspace, DelegateRole
from workspace_governance.hierarchy.delegation import DelegationEngine, eligible_delegates
from workspace_governance.hierarchy.models import (
    AncestorPath,
    AuthorityAssignment,
    DelegationOutcome,
    IntegrityReport,
    TeamMembership,
    TreeNode,
)
from workspace_governance.hierarchy.paths import resolve_ancestor_path
from workspace_governance.hierarchy.policy import HierarchyPolicy
from workspace_governance.hierarchy.store import NodeStore
from workspace_governance.hierarchy.tree import (
    build_tree,
    can_create_sub_workspace,
    find_depth_violations,
    index_tree,
)
from workspace_governance.kernel.errors import (
    InvalidDelegationTarget,
    PartialDelegationFailure,
    WorkspaceNotFound,
)
from workspace_governance.kernel.logging import get_logger
from workspace_governance.kernel.time import RealTimeProvider, TimeProvider

logger = get_logger(__name__)


class WorkspaceGovernance:
    """
    Workspace Governance main façade

    Provides a unified API for:
    - Building the workspace tree of a scope
    - Resolving responsible roles and their holders
    - Breadcrumb paths
    - Role delegation and demotion retries
    - Integrity checks (depth, single holder)

    Nothing is cached; each call reads a fresh snapshot from the store.
    """

    def __init__(
        self,
        store: NodeStore,
        policy: HierarchyPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the façade

        Args:
            store: Persistence for workspaces and memberships
            policy: Hierarchy policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
        """
        self.store = store
        self.policy = policy or HierarchyPolicy()
        self.time_provider = time_provider or RealTimeProvider()
        self.engine = DelegationEngine(self.store, self.policy, self.time_provider)

    # Reads

    async def load_tree(self, scope_id: str) -> list[TreeNode]:
        """Build the workspace forest of a scope"""
        nodes = await self.store.list_nodes(scope_id)
        return build_tree(nodes)

    async def _load_node(self, scope_id: str, workspace_id: str) -> TreeNode:
        node = index_tree(await self.load_tree(scope_id)).get(workspace_id)
        if node is None:
            raise WorkspaceNotFound(workspace_id)
        return node

    async def authority_overview(self, scope_id: str) -> dict[str, AuthorityAssignment]:
        """Responsible role and current holder of every workspace, in tree order"""
        roots = await self.load_tree(scope_id)
        index = index_tree(roots)
        memberships = await self.store.list_active_memberships(index.keys())
        return annotate_authority(roots, memberships, self.policy)

    async def ancestor_path(self, scope_id: str, workspace_id: str) -> AncestorPath:
        """
        Root-first breadcrumb path of a workspace

        Raises:
            WorkspaceNotFound: If workspace_id is not in the scope
        """
        nodes = await self.store.list_nodes(scope_id)
        path = resolve_ancestor_path(workspace_id, nodes)
        if not path.nodes:
            raise WorkspaceNotFound(workspace_id)
        return path

    async def delegation_candidates(
        self, scope_id: str, workspace_id: str
    ) -> list[TeamMembership]:
        """Active members of a workspace who could take over its responsible role"""
        node = await self._load_node(scope_id, workspace_id)
        memberships = await self.store.list_active_memberships([node.id])
        role = resolve_responsible_role(node, self.policy)
        return eligible_delegates(node, find_holder(node, role, memberships), memberships)

    async def check_sub_workspace(self, command: CreateSubWorkspace) -> bool:
        """
        Whether a workspace may be created under command.parent_id

        Raises:
            WorkspaceNotFound: If the parent is not in the scope
        """
        nodes = await self.store.list_nodes(command.scope_id)
        parent_map: dict[str, str | None] = {n.id: n.parent_id for n in nodes}
        if command.parent_id is not None and command.parent_id not in parent_map:
            raise WorkspaceNotFound(command.parent_id)
        return can_create_sub_workspace(
            command.parent_id, parent_map, self.policy.max_workspace_depth
        )

    # Delegation

    async def delegate_role(self, scope_id: str, command: DelegateRole) -> DelegationOutcome:
        """
        Hand the responsible role of a workspace to one of its members

        The current holder is resolved from a fresh membership read right
        before the writes are issued.

        Raises:
            WorkspaceNotFound: If the workspace is not in the scope
            NoResponsibleRole: If the workspace has no governable role
            InvalidDelegationTarget: If the new holder is not an active
                member of the workspace, or already holds the role
            DelegationFailed: If nothing was written
            PartialDelegationFailure: If the old holder was not demoted
        """
        node = await self._load_node(scope_id, command.workspace_id)
        role = resolve_responsible_role(node, self.policy)

        memberships = await self.store.list_active_memberships([node.id])
        new_holder = next(
            (m for m in memberships if m.id == command.new_holder_membership_id), None
        )
        if new_holder is None:
            raise InvalidDelegationTarget(
                node.id,
                command.new_holder_membership_id,
                "not an active member of this workspace",
            )

        # After a partial failure the new holder may already be among the holders
        holders = find_holders(node, role, memberships)
        stale = [m for m in holders if m.id != new_holder.id]
        if not stale and holders:
            raise InvalidDelegationTarget(
                node.id, new_holder.id, "membership already holds the role"
            )
        current_holder = stale[0] if stale else None
        return await self.engine.delegate(
            node,
            role,
            current_holder,
            new_holder,
            acting_user_id=command.acting_user_id,
        )

    async def retry_demotion(self, failure: PartialDelegationFailure) -> None:
        """Retry the demotion step of a partially applied delegation"""
        await self.engine.complete_demotion(failure)

    # Integrity

    async def integrity_report(self, scope_id: str) -> IntegrityReport:
        """Check depth and single-holder invariants over a whole scope"""
        roots = await self.load_tree(scope_id)
        index = index_tree(roots)
        memberships = await self.store.list_active_memberships(index.keys())

        assignments = annotate_authority(roots, memberships, self.policy)
        conflicts = find_single_holder_violations(roots, memberships, self.policy)
        report = IntegrityReport(
            scope_id=scope_id,
            workspace_count=len(index),
            depth_violations=[
                n.id for n in find_depth_violations(roots, self.policy.max_workspace_depth)
            ],
            holder_conflicts={
                ws_id: [m.id for m in holders] for ws_id, holders in conflicts.items()
            },
            vacant=[a.workspace_id for a in assignments.values() if a.is_vacant],
            ungoverned=[
                a.workspace_id for a in assignments.values() if a.responsible_role is None
            ],
        )
        if not report.is_consistent:
            logger.warning(
                "Workspace hierarchy integrity issues",
                scope_id=scope_id,
                depth_violations=len(report.depth_violations),
                holder_conflicts=len(report.holder_conflicts),
            )
        return report
