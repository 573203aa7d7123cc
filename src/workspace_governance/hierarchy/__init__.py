"""
Hierarchy Module - Workspace tree, role authority and delegation

- Tree building from flat parent-pointer records (depth-labeled, cycle-safe)
- Responsible role resolution from the department and committee catalogs
- Ancestor paths for breadcrumbs
- Two-step role delegation with explicit partial-failure reporting
"""

from workspace_governance.hierarchy.models import (
    AncestorPath,
    AuthorityAssignment,
    DelegationOutcome,
    HierarchyLevel,
    MembershipStatus,
    TeamMembership,
    TreeNode,
    WorkspaceNode,
    WorkspaceRole,
    WorkspaceStatus,
    WorkspaceType,
)

__all__ = [
    "WorkspaceNode",
    "TreeNode",
    "TeamMembership",
    "AncestorPath",
    "AuthorityAssignment",
    "DelegationOutcome",
    "HierarchyLevel",
    "MembershipStatus",
    "WorkspaceRole",
    "WorkspaceStatus",
    "WorkspaceType",
]
