"""
Role Authority Resolver - Which role governs a workspace, and who holds it

Resolution is a lookup over the workspace type and the static catalogs,
not behaviour attached to node classes:

1. ROOT -> WORKSPACE_OWNER
2. DEPARTMENT -> the department's manager role
3. COMMITTEE -> lead role of the department committee with the same name
   (case-insensitive)
4. TEAM -> coordinator role of the department's FIRST committee
5. anything else -> None (no governable role)

Rule 4 is department-level only: a team record does not say which
committee it belongs to. Everything here is pure and never raises on
malformed records.
"""

from collections import defaultdict
from collections.abc import Iterable

from workspace_governance.hierarchy.models import (
    AuthorityAssignment,
    HierarchyLevel,
    TeamMembership,
    TreeNode,
    WorkspaceNode,
    WorkspaceRole,
    WorkspaceType,
)
from workspace_governance.hierarchy.policy import HierarchyPolicy, default_hierarchy_policy
from workspace_governance.hierarchy.tree import iter_tree

TYPE_LEVELS: dict[WorkspaceType, HierarchyLevel] = {
    WorkspaceType.ROOT: HierarchyLevel.OWNER,
    WorkspaceType.DEPARTMENT: HierarchyLevel.MANAGER,
    WorkspaceType.COMMITTEE: HierarchyLevel.LEAD,
    WorkspaceType.TEAM: HierarchyLevel.COORDINATOR,
}

ROLE_LABEL_OVERRIDES: dict[WorkspaceRole, str] = {
    WorkspaceRole.TECH_FINANCE_MANAGER: "Tech & Finance Manager",
    WorkspaceRole.IT_LEAD: "IT Lead",
    WorkspaceRole.IT_COORDINATOR: "IT Coordinator",
}


def resolve_responsible_role(
    node: WorkspaceNode, policy: HierarchyPolicy = default_hierarchy_policy
) -> WorkspaceRole | None:
    """
    Compute the single role a workspace is governed by

    Args:
        node: Workspace (tree node or plain record)
        policy: Catalogs to resolve against

    Returns:
        The responsible role, or None when no catalog entry applies
    """
    if node.type == WorkspaceType.ROOT:
        return WorkspaceRole.WORKSPACE_OWNER

    department = policy.department(node.department_id)
    if department is None:
        return None

    if node.type == WorkspaceType.DEPARTMENT:
        return department.manager_role

    committees = policy.committees_for(department.id)

    if node.type == WorkspaceType.COMMITTEE:
        wanted = node.name.casefold()
        for committee in committees:
            if committee.name.casefold() == wanted:
                return committee.lead_role
        return None

    if node.type == WorkspaceType.TEAM:
        # TODO: match the parent committee once team records carry it
        return committees[0].coordinator_role if committees else None

    return None


def find_holders(
    node: WorkspaceNode, role: WorkspaceRole | None, memberships: Iterable[TeamMembership]
) -> list[TeamMembership]:
    """All active memberships on node holding role, in input order"""
    if role is None:
        return []
    return [
        m
        for m in memberships
        if m.workspace_id == node.id and m.role == role and m.is_active()
    ]


def find_holder(
    node: WorkspaceNode, role: WorkspaceRole | None, memberships: Iterable[TeamMembership]
) -> TeamMembership | None:
    """
    Current holder of role on node

    At most one active holder is expected. If the store returns more,
    the first one is reported; the duplicate is a data integrity issue
    (see find_single_holder_violations), not a resolution failure.
    """
    holders = find_holders(node, role, memberships)
    return holders[0] if holders else None


def hierarchy_level_for_node(node: WorkspaceNode) -> HierarchyLevel | None:
    """
    Authority tier of a workspace

    Taken from the workspace type; untyped tree nodes fall back to their
    depth (1 owner, 2 manager, 3 lead, deeper coordinator).
    """
    if node.type is not None:
        return TYPE_LEVELS[node.type]
    depth = node.depth if isinstance(node, TreeNode) else None
    if depth is None:
        return None
    return HierarchyLevel(min(max(depth, 1), HierarchyLevel.COORDINATOR))


def role_level(
    role: WorkspaceRole, policy: HierarchyPolicy = default_hierarchy_policy
) -> HierarchyLevel:
    """Authority tier of a role according to the catalogs (default coordinator)"""
    if role == WorkspaceRole.WORKSPACE_OWNER:
        return HierarchyLevel.OWNER
    if any(d.manager_role == role for d in policy.departments):
        return HierarchyLevel.MANAGER
    for committees in policy.committees.values():
        if any(c.lead_role == role for c in committees):
            return HierarchyLevel.LEAD
    return HierarchyLevel.COORDINATOR


def role_label(role: WorkspaceRole) -> str:
    """Human-readable role name, e.g. CATERING_LEAD -> 'Catering Lead'"""
    if role in ROLE_LABEL_OVERRIDES:
        return ROLE_LABEL_OVERRIDES[role]
    return role.value.replace("_", " ").title()


def can_manage_role(
    manager_role: WorkspaceRole,
    target_role: WorkspaceRole,
    policy: HierarchyPolicy = default_hierarchy_policy,
) -> bool:
    """A role manages only roles on strictly lower tiers"""
    return role_level(manager_role, policy) < role_level(target_role, policy)


def assignable_roles(
    role: WorkspaceRole, policy: HierarchyPolicy = default_hierarchy_policy
) -> list[WorkspaceRole]:
    """Roles a holder of role may hand out to others"""
    own = role_level(role, policy)
    return [r for r in WorkspaceRole if role_level(r, policy) > own]


def roles_by_level(
    policy: HierarchyPolicy = default_hierarchy_policy,
) -> dict[HierarchyLevel, list[WorkspaceRole]]:
    """Group every role by its tier, for display"""
    grouped: dict[HierarchyLevel, list[WorkspaceRole]] = {level: [] for level in HierarchyLevel}
    for role in WorkspaceRole:
        grouped[role_level(role, policy)].append(role)
    return grouped


def annotate_authority(
    roots: Iterable[TreeNode],
    memberships: Iterable[TeamMembership],
    policy: HierarchyPolicy = default_hierarchy_policy,
) -> dict[str, AuthorityAssignment]:
    """
    Resolve responsible role and holder for every node of a built forest

    Returns:
        workspace id -> assignment, in tree pre-order
    """
    by_workspace: dict[str, list[TeamMembership]] = defaultdict(list)
    for membership in memberships:
        by_workspace[membership.workspace_id].append(membership)

    assignments: dict[str, AuthorityAssignment] = {}
    for node in iter_tree(roots):
        role = resolve_responsible_role(node, policy)
        assignments[node.id] = AuthorityAssignment(
            workspace_id=node.id,
            workspace_name=node.name,
            depth=node.depth,
            level=hierarchy_level_for_node(node),
            responsible_role=role,
            holder=find_holder(node, role, by_workspace[node.id]),
        )
    return assignments


def find_single_holder_violations(
    roots: Iterable[TreeNode],
    memberships: Iterable[TeamMembership],
    policy: HierarchyPolicy = default_hierarchy_policy,
) -> dict[str, list[TeamMembership]]:
    """
    Workspaces whose responsible role has more than one active holder

    Diagnostic only - should be empty. Expected transiently while a
    delegation sits between its two writes, or after a partial failure.
    """
    all_memberships = list(memberships)
    violations: dict[str, list[TeamMembership]] = {}
    for node in iter_tree(roots):
        holders = find_holders(node, resolve_responsible_role(node, policy), all_memberships)
        if len(holders) > 1:
            violations[node.id] = holders
    return violations
