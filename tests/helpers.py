"""
Test Helper Functions - Builders for workspace records

Keeps tests readable: a node or membership is one call with only the
fields the test cares about.
"""

from datetime import datetime, timezone

from workspace_governance.hierarchy.models import (
    MembershipStatus,
    TeamMembership,
    TreeNode,
    WorkspaceNode,
    WorkspaceRole,
    WorkspaceType,
)

JOINED_AT = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

# Scope id of the reference scenario in conftest
SCOPE = "event-1"


def make_node(
    node_id: str,
    parent_id: str | None = None,
    workspace_type: WorkspaceType | None = None,
    department_id: str | None = None,
    name: str | None = None,
) -> WorkspaceNode:
    """
    Builder for workspace records

    Args:
        node_id: Workspace id
        parent_id: Parent workspace id (None for a root)
        workspace_type: Hierarchy tier, None for an untyped legacy record
        department_id: Department catalog key
        name: Display name (defaults to "Workspace {node_id}")
    """
    return WorkspaceNode(
        id=node_id,
        name=name or f"Workspace {node_id}",
        parent_id=parent_id,
        type=workspace_type,
        department_id=department_id,
    )


def make_membership(
    membership_id: str,
    workspace_id: str,
    role: WorkspaceRole,
    user_id: str | None = None,
    status: MembershipStatus = MembershipStatus.ACTIVE,
) -> TeamMembership:
    """Builder for team memberships (user id defaults to "user-{membership_id}")"""
    return TeamMembership(
        id=membership_id,
        workspace_id=workspace_id,
        user_id=user_id or f"user-{membership_id}",
        role=role,
        status=status,
        joined_at=JOINED_AT,
    )


def chain(length: int, prefix: str = "n") -> list[WorkspaceNode]:
    """Untyped parent chain n1 <- n2 <- ... of the given length"""
    return [
        make_node(f"{prefix}{i}", parent_id=f"{prefix}{i - 1}" if i > 1 else None)
        for i in range(1, length + 1)
    ]


def collect_ids(roots: list[TreeNode]) -> list[str]:
    """Every id in a built forest, pre-order, duplicates kept"""
    ids: list[str] = []
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        ids.append(node.id)
        stack.extend(reversed(node.children))
    return ids
