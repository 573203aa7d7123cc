"""
Tests for WorkspaceGovernance Façade - Public API

These tests verify the façade wires store, tree, authority and
delegation together and re-reads the current holder before delegating.
"""

import pytest

from tests.helpers import SCOPE, make_membership, make_node
from workspace_governance import WorkspaceGovernance
from workspace_governance.hierarchy.commands import CreateSubWorkspace, DelegateRole
from workspace_governance.hierarchy.models import (
    MembershipStatus,
    WorkspaceRole,
    WorkspaceType,
)
from workspace_governance.hierarchy.store import InMemoryNodeStore
from workspace_governance.kernel.errors import (
    InvalidDelegationTarget,
    NoResponsibleRole,
    PartialDelegationFailure,
    WorkspaceNotFound,
)


@pytest.mark.anyio
async def test_load_tree(governance) -> None:
    roots = await governance.load_tree(SCOPE)

    assert [r.id for r in roots] == ["R"]
    assert roots[0].children[0].id == "D"


@pytest.mark.anyio
async def test_load_tree_unknown_scope(governance) -> None:
    assert await governance.load_tree("no-such-scope") == []


@pytest.mark.anyio
async def test_authority_overview(governance) -> None:
    overview = await governance.authority_overview(SCOPE)

    assert overview["D"].responsible_role == WorkspaceRole.OPERATIONS_MANAGER
    assert overview["D"].holder.id == "m1"
    assert overview["C"].holder.id == "m3"
    assert overview["R"].is_vacant


@pytest.mark.anyio
async def test_ancestor_path(governance) -> None:
    path = await governance.ancestor_path(SCOPE, "T")

    assert path.ids == ["R", "D", "C", "T"]


@pytest.mark.anyio
async def test_ancestor_path_unknown_workspace(governance) -> None:
    with pytest.raises(WorkspaceNotFound):
        await governance.ancestor_path(SCOPE, "ghost")


@pytest.mark.anyio
async def test_delegation_candidates(governance) -> None:
    candidates = await governance.delegation_candidates(SCOPE, "D")

    assert [m.id for m in candidates] == ["m2"]


@pytest.mark.anyio
async def test_delegate_role_resolves_current_holder(governance, memory_store) -> None:
    """Test the façade finds m1 itself and demotes it"""
    outcome = await governance.delegate_role(
        SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id="m2")
    )

    assert outcome.demoted.id == "m1"
    assert memory_store.get_membership("m2").role == WorkspaceRole.OPERATIONS_MANAGER
    assert memory_store.get_membership("m1").role == WorkspaceRole.EVENT_LEAD


@pytest.mark.anyio
async def test_delegate_role_uses_fresh_holder(governance, memory_store) -> None:
    """Test a holder change made after setup is picked up at delegation time"""
    await memory_store.update_membership_role("m1", WorkspaceRole.EVENT_COORDINATOR)
    memory_store.add_membership(make_membership("m4", "D", WorkspaceRole.OPERATIONS_MANAGER))

    outcome = await governance.delegate_role(
        SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id="m2")
    )

    assert outcome.demoted.id == "m4"
    assert memory_store.get_membership("m1").role == WorkspaceRole.EVENT_COORDINATOR


@pytest.mark.anyio
async def test_delegate_role_vacant(governance, memory_store) -> None:
    memory_store.add_membership(make_membership("owner", "R", WorkspaceRole.EVENT_LEAD))

    outcome = await governance.delegate_role(
        SCOPE, DelegateRole(workspace_id="R", new_holder_membership_id="owner")
    )

    assert outcome.demoted is None
    assert memory_store.get_membership("owner").role == WorkspaceRole.WORKSPACE_OWNER


@pytest.mark.anyio
async def test_delegate_role_unknown_workspace(governance) -> None:
    with pytest.raises(WorkspaceNotFound):
        await governance.delegate_role(
            SCOPE, DelegateRole(workspace_id="ghost", new_holder_membership_id="m2")
        )


@pytest.mark.anyio
async def test_delegate_role_to_non_member(governance, memory_store) -> None:
    """Test members of other workspaces and inactive members are rejected"""
    memory_store.add_membership(
        make_membership(
            "left", "D", WorkspaceRole.EVENT_COORDINATOR, status=MembershipStatus.INACTIVE
        )
    )

    for membership_id in ("m3", "left", "ghost"):
        with pytest.raises(InvalidDelegationTarget):
            await governance.delegate_role(
                SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id=membership_id)
            )
    assert memory_store.update_log == []


@pytest.mark.anyio
async def test_redelegate_demotes_stale_holder_listed_second(event_nodes, test_time) -> None:
    """Test re-running a half-applied delegation when the new holder is read first"""
    store = InMemoryNodeStore(
        {SCOPE: event_nodes},
        [
            make_membership("m2", "D", WorkspaceRole.OPERATIONS_MANAGER, user_id="bob"),
            make_membership("m1", "D", WorkspaceRole.OPERATIONS_MANAGER, user_id="alice"),
        ],
    )
    governance = WorkspaceGovernance(store, time_provider=test_time)

    outcome = await governance.delegate_role(
        SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id="m2")
    )

    assert outcome.demoted is not None
    assert outcome.demoted.id == "m1"
    assert store.update_log == [("m1", WorkspaceRole.EVENT_LEAD)]
    assert store.get_membership("m1").role == WorkspaceRole.EVENT_LEAD
    report = await governance.integrity_report(SCOPE)
    assert report.holder_conflicts == {}


@pytest.mark.anyio
async def test_delegate_role_to_sole_holder_rejected(governance, memory_store) -> None:
    """Test that handing the role to the only current holder is refused"""
    with pytest.raises(InvalidDelegationTarget):
        await governance.delegate_role(
            SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id="m1")
        )
    assert memory_store.update_log == []


@pytest.mark.anyio
async def test_delegate_role_without_responsible_role(test_time) -> None:
    node = make_node("x", workspace_type=WorkspaceType.COMMITTEE, department_id="operations",
                     name="Not In Catalog")
    store = InMemoryNodeStore(
        {"s": [node]}, [make_membership("mx", "x", WorkspaceRole.EVENT_COORDINATOR)]
    )
    governance = WorkspaceGovernance(store, time_provider=test_time)

    with pytest.raises(NoResponsibleRole):
        await governance.delegate_role(
            "s", DelegateRole(workspace_id="x", new_holder_membership_id="mx")
        )


@pytest.mark.anyio
async def test_partial_failure_then_retry(governance, memory_store) -> None:
    """Test integrity report flags the two holders until the retry succeeds"""
    memory_store.fail_updates_for["m1"] = RuntimeError("lock timeout")

    with pytest.raises(PartialDelegationFailure) as exc_info:
        await governance.delegate_role(
            SCOPE, DelegateRole(workspace_id="D", new_holder_membership_id="m2")
        )

    report = await governance.integrity_report(SCOPE)
    assert report.is_consistent is False
    assert sorted(report.holder_conflicts["D"]) == ["m1", "m2"]

    memory_store.fail_updates_for.clear()
    await governance.retry_demotion(exc_info.value)

    report = await governance.integrity_report(SCOPE)
    assert report.is_consistent is True
    assert report.holder_conflicts == {}


@pytest.mark.anyio
async def test_integrity_report_reference_scenario(governance) -> None:
    report = await governance.integrity_report(SCOPE)

    assert report.scope_id == SCOPE
    assert report.workspace_count == 4
    assert report.depth_violations == []
    assert report.vacant == ["R", "T"]
    assert report.ungoverned == []
    assert report.is_consistent


@pytest.mark.anyio
async def test_integrity_report_depth_violation(governance, memory_store) -> None:
    memory_store.add_node(SCOPE, make_node("too-deep", parent_id="T"))

    report = await governance.integrity_report(SCOPE)

    assert report.depth_violations == ["too-deep"]
    assert report.ungoverned == ["too-deep"]
    assert report.is_consistent is False


@pytest.mark.anyio
async def test_check_sub_workspace(governance) -> None:
    assert await governance.check_sub_workspace(
        CreateSubWorkspace(scope_id=SCOPE, name="Menu", parent_id="C")
    )
    assert not await governance.check_sub_workspace(
        CreateSubWorkspace(scope_id=SCOPE, name="Deeper", parent_id="T")
    )
    assert await governance.check_sub_workspace(CreateSubWorkspace(scope_id=SCOPE, name="Other"))


@pytest.mark.anyio
async def test_check_sub_workspace_unknown_parent(governance) -> None:
    with pytest.raises(WorkspaceNotFound):
        await governance.check_sub_workspace(
            CreateSubWorkspace(scope_id=SCOPE, name="Lost", parent_id="ghost")
        )
