"""
Tests for the Role Authority Resolver

Resolution is a pure lookup over workspace type and catalogs; holder
lookup must tolerate duplicate holders instead of failing.
"""

import pytest

from tests.helpers import make_membership, make_node
from workspace_governance.hierarchy.authority import (
    annotate_authority,
    assignable_roles,
    can_manage_role,
    find_holder,
    find_holders,
    find_single_holder_violations,
    hierarchy_level_for_node,
    resolve_responsible_role,
    role_label,
    role_level,
    roles_by_level,
)
from workspace_governance.hierarchy.models import (
    HierarchyLevel,
    MembershipStatus,
    WorkspaceRole,
    WorkspaceType,
)
from workspace_governance.hierarchy.policy import (
    CommitteeSpec,
    DepartmentSpec,
    HierarchyPolicy,
)
from workspace_governance.hierarchy.tree import build_tree, index_tree


@pytest.fixture
def ops_policy() -> HierarchyPolicy:
    """Minimal catalog keyed 'ops' with a single Catering committee"""
    return HierarchyPolicy(
        departments=[
            DepartmentSpec(
                id="ops", name="Operations", manager_role=WorkspaceRole.OPERATIONS_MANAGER
            )
        ],
        committees={
            "ops": [
                CommitteeSpec(
                    id="catering",
                    name="Catering",
                    lead_role=WorkspaceRole.CATERING_LEAD,
                    coordinator_role=WorkspaceRole.CATERING_COORDINATOR,
                )
            ]
        },
    )


class TestResolveResponsibleRole:
    """Test the five resolution rules."""

    def test_concrete_scenario(self, ops_policy) -> None:
        """Test R/D/C: one root, D manager role, C committee lead role"""
        nodes = [
            make_node("R", workspace_type=WorkspaceType.ROOT),
            make_node(
                "D", parent_id="R", workspace_type=WorkspaceType.DEPARTMENT, department_id="ops"
            ),
            make_node(
                "C",
                parent_id="D",
                workspace_type=WorkspaceType.COMMITTEE,
                department_id="ops",
                name="Catering",
            ),
        ]
        roots = build_tree(nodes)
        index = index_tree(roots)

        assert [r.id for r in roots] == ["R"]
        assert index["D"].depth == 2
        assert index["C"].depth == 3
        assert resolve_responsible_role(index["R"], ops_policy) == WorkspaceRole.WORKSPACE_OWNER
        assert (
            resolve_responsible_role(index["D"], ops_policy)
            == WorkspaceRole.OPERATIONS_MANAGER
        )
        assert resolve_responsible_role(index["C"], ops_policy) == WorkspaceRole.CATERING_LEAD

    def test_root_ignores_department(self) -> None:
        """Test that ROOT resolves to owner whatever its department"""
        node = make_node("r", workspace_type=WorkspaceType.ROOT, department_id="unknown")

        assert resolve_responsible_role(node) == WorkspaceRole.WORKSPACE_OWNER

    def test_committee_name_match_is_case_insensitive(self) -> None:
        """Test committee lookup by name ignores case"""
        node = make_node(
            "c", workspace_type=WorkspaceType.COMMITTEE, department_id="growth", name="SOCIAL media"
        )

        assert resolve_responsible_role(node) == WorkspaceRole.SOCIAL_MEDIA_LEAD

    def test_unknown_committee_name(self) -> None:
        """Test that a committee missing from the catalog has no role"""
        node = make_node(
            "c", workspace_type=WorkspaceType.COMMITTEE, department_id="operations", name="Bar"
        )

        assert resolve_responsible_role(node) is None

    def test_team_uses_first_committee_coordinator(self) -> None:
        """Test TEAM resolves to the coordinator of the department's first committee"""
        team = make_node("t", workspace_type=WorkspaceType.TEAM, department_id="operations")
        tech_team = make_node("t2", workspace_type=WorkspaceType.TEAM, department_id="tech_finance")

        assert resolve_responsible_role(team) == WorkspaceRole.EVENT_COORDINATOR
        assert resolve_responsible_role(tech_team) == WorkspaceRole.FINANCE_COORDINATOR

    def test_team_without_committees(self) -> None:
        """Test TEAM in a department with no committees has no role"""
        policy = HierarchyPolicy(
            departments=[
                DepartmentSpec(id="solo", name="Solo", manager_role=WorkspaceRole.GROWTH_MANAGER)
            ],
            committees={},
        )
        team = make_node("t", workspace_type=WorkspaceType.TEAM, department_id="solo")

        assert resolve_responsible_role(team, policy) is None

    @pytest.mark.parametrize(
        "workspace_type,department_id",
        [
            (WorkspaceType.DEPARTMENT, None),
            (WorkspaceType.DEPARTMENT, "no-such-department"),
            (WorkspaceType.COMMITTEE, None),
            (None, "operations"),
        ],
    )
    def test_unresolvable_nodes_return_none(self, workspace_type, department_id) -> None:
        """Test malformed records degrade to no role instead of raising"""
        node = make_node("x", workspace_type=workspace_type, department_id=department_id)

        assert resolve_responsible_role(node) is None

    def test_resolution_is_deterministic(self, event_nodes, policy) -> None:
        """Test the same input always yields the same role"""
        for node in event_nodes:
            first = resolve_responsible_role(node, policy)
            assert all(resolve_responsible_role(node, policy) == first for _ in range(5))

    def test_every_department_resolves_its_manager(self, policy) -> None:
        """Test the default catalog maps each department to its manager role"""
        for department in policy.departments:
            node = make_node(
                department.id, workspace_type=WorkspaceType.DEPARTMENT, department_id=department.id
            )
            assert resolve_responsible_role(node, policy) == department.manager_role


class TestHolderLookup:
    """Test finding the holder of a responsible role."""

    def test_find_holder(self, event_nodes, event_memberships) -> None:
        """Test the active membership with the role is found"""
        department = event_nodes[1]

        holder = find_holder(department, WorkspaceRole.OPERATIONS_MANAGER, event_memberships)

        assert holder is not None
        assert holder.id == "m1"

    def test_vacant_role(self, event_nodes, event_memberships) -> None:
        """Test no holder on a workspace without a matching membership"""
        team = event_nodes[3]

        assert find_holder(team, WorkspaceRole.EVENT_COORDINATOR, event_memberships) is None

    def test_none_role_has_no_holder(self, event_nodes, event_memberships) -> None:
        assert find_holder(event_nodes[1], None, event_memberships) is None

    def test_inactive_membership_is_not_holder(self, event_nodes) -> None:
        """Test that only ACTIVE memberships count"""
        memberships = [
            make_membership(
                "old", "D", WorkspaceRole.OPERATIONS_MANAGER, status=MembershipStatus.INACTIVE
            )
        ]

        assert find_holder(event_nodes[1], WorkspaceRole.OPERATIONS_MANAGER, memberships) is None

    def test_same_role_on_other_workspace_is_not_holder(self, event_nodes) -> None:
        memberships = [make_membership("m", "C", WorkspaceRole.OPERATIONS_MANAGER)]

        assert find_holder(event_nodes[1], WorkspaceRole.OPERATIONS_MANAGER, memberships) is None

    def test_duplicate_holders_return_first(self, event_nodes) -> None:
        """Test two holders do not fail resolution"""
        memberships = [
            make_membership("a", "D", WorkspaceRole.OPERATIONS_MANAGER),
            make_membership("b", "D", WorkspaceRole.OPERATIONS_MANAGER),
        ]
        department = event_nodes[1]

        assert find_holder(department, WorkspaceRole.OPERATIONS_MANAGER, memberships).id == "a"
        assert [
            m.id for m in find_holders(department, WorkspaceRole.OPERATIONS_MANAGER, memberships)
        ] == ["a", "b"]


class TestLevelsAndLabels:
    """Test role tiers and display helpers."""

    def test_level_from_type(self, event_nodes) -> None:
        levels = [hierarchy_level_for_node(n) for n in event_nodes]

        assert levels == [
            HierarchyLevel.OWNER,
            HierarchyLevel.MANAGER,
            HierarchyLevel.LEAD,
            HierarchyLevel.COORDINATOR,
        ]

    def test_level_from_depth_for_untyped_tree_nodes(self) -> None:
        """Test untyped tree nodes take their level from depth, capped at coordinator"""
        roots = build_tree(
            [
                make_node("a"),
                make_node("b", parent_id="a"),
                make_node("c", parent_id="b"),
                make_node("d", parent_id="c"),
                make_node("e", parent_id="d"),
            ]
        )
        index = index_tree(roots)

        assert hierarchy_level_for_node(index["a"]) == HierarchyLevel.OWNER
        assert hierarchy_level_for_node(index["b"]) == HierarchyLevel.MANAGER
        assert hierarchy_level_for_node(index["e"]) == HierarchyLevel.COORDINATOR

    def test_untyped_plain_record_has_no_level(self) -> None:
        assert hierarchy_level_for_node(make_node("x")) is None

    @pytest.mark.parametrize(
        "role,level",
        [
            (WorkspaceRole.WORKSPACE_OWNER, HierarchyLevel.OWNER),
            (WorkspaceRole.TECH_FINANCE_MANAGER, HierarchyLevel.MANAGER),
            (WorkspaceRole.CATERING_LEAD, HierarchyLevel.LEAD),
            (WorkspaceRole.VOLUNTEERS_LEAD, HierarchyLevel.LEAD),
            (WorkspaceRole.IT_COORDINATOR, HierarchyLevel.COORDINATOR),
            (WorkspaceRole.VOLUNTEER_COORDINATOR, HierarchyLevel.COORDINATOR),
        ],
    )
    def test_role_level(self, role, level) -> None:
        assert role_level(role) == level

    def test_role_labels(self) -> None:
        assert role_label(WorkspaceRole.CATERING_LEAD) == "Catering Lead"
        assert role_label(WorkspaceRole.SOCIAL_MEDIA_COORDINATOR) == "Social Media Coordinator"
        assert role_label(WorkspaceRole.TECH_FINANCE_MANAGER) == "Tech & Finance Manager"
        assert role_label(WorkspaceRole.IT_LEAD) == "IT Lead"

    def test_can_manage_only_lower_tiers(self) -> None:
        assert can_manage_role(WorkspaceRole.OPERATIONS_MANAGER, WorkspaceRole.CATERING_LEAD)
        assert not can_manage_role(WorkspaceRole.CATERING_LEAD, WorkspaceRole.MARKETING_LEAD)
        assert not can_manage_role(WorkspaceRole.EVENT_COORDINATOR, WorkspaceRole.WORKSPACE_OWNER)

    def test_assignable_roles(self) -> None:
        """Test a lead may only hand out coordinator roles"""
        roles = assignable_roles(WorkspaceRole.CATERING_LEAD)

        assert WorkspaceRole.CATERING_COORDINATOR in roles
        assert WorkspaceRole.MARKETING_LEAD not in roles
        assert all(role_level(r) == HierarchyLevel.COORDINATOR for r in roles)
        assert assignable_roles(WorkspaceRole.VOLUNTEER_COORDINATOR) == []

    def test_roles_by_level_covers_every_role(self) -> None:
        grouped = roles_by_level()

        assert grouped[HierarchyLevel.OWNER] == [WorkspaceRole.WORKSPACE_OWNER]
        assert len(grouped[HierarchyLevel.MANAGER]) == 5
        assert sum(len(roles) for roles in grouped.values()) == len(WorkspaceRole)


class TestAnnotateAuthority:
    """Test whole-forest authority resolution."""

    def test_annotate_reference_scenario(self, event_nodes, event_memberships, policy) -> None:
        assignments = annotate_authority(build_tree(event_nodes), event_memberships, policy)

        assert list(assignments) == ["R", "D", "C", "T"]
        assert assignments["R"].is_vacant
        assert assignments["D"].holder.id == "m1"
        assert assignments["C"].responsible_role == WorkspaceRole.CATERING_LEAD
        assert assignments["C"].holder.id == "m3"
        assert assignments["T"].responsible_role == WorkspaceRole.EVENT_COORDINATOR
        assert assignments["T"].depth == 4
        assert assignments["T"].level == HierarchyLevel.COORDINATOR

    def test_single_holder_violations(self, event_nodes, event_memberships, policy) -> None:
        """Test a second active holder is reported"""
        memberships = event_memberships + [
            make_membership("dup", "D", WorkspaceRole.OPERATIONS_MANAGER)
        ]

        violations = find_single_holder_violations(build_tree(event_nodes), memberships, policy)

        assert list(violations) == ["D"]
        assert [m.id for m in violations["D"]] == ["m1", "dup"]

    def test_no_violations_in_reference_scenario(
        self, event_nodes, event_memberships, policy
    ) -> None:
        assert find_single_holder_violations(build_tree(event_nodes), event_memberships, policy) == {}
