#!/usr/bin/env python3
"""
Event Staff Handover - Realistic Delegation Example

This example walks through a conference's staff hierarchy and a role
handover that goes wrong halfway.

Scenario:
- Summit 2026 has an Operations department with a Catering committee
- Alice manages Operations; Bob and Carol are members
- Alice hands Operations to Bob (clean delegation)
- Bob tries to hand it to Carol while the store rejects his demotion
- The integrity report shows two holders until the demotion is retried

Run:
    python examples/event_handover.py
"""

import asyncio
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from workspace_governance import SQLiteNodeStore, WorkspaceGovernance
from workspace_governance.hierarchy.authority import role_label
from workspace_governance.hierarchy.commands import DelegateRole
from workspace_governance.hierarchy.models import WorkspaceRole, WorkspaceType
from workspace_governance.hierarchy.paths import breadcrumb_labels
from workspace_governance.kernel.errors import PartialDelegationFailure
from workspace_governance.kernel.time import TestTimeProvider

SCOPE = "summit-2026"


def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


async def print_authority(gov: WorkspaceGovernance) -> None:
    overview = await gov.authority_overview(SCOPE)
    for a in overview.values():
        indent = "  " * (a.depth - 1)
        holder = a.holder.user_name if a.holder else "vacant"
        role = role_label(a.responsible_role) if a.responsible_role else "-"
        print(f"{indent}{a.workspace_name}: {role} ({holder})")


class FlakyStore(SQLiteNodeStore):
    """SQLite store whose next role write for one membership fails"""

    fail_next_for: str | None = None

    async def update_membership_role(self, membership_id, new_role):
        if membership_id == self.fail_next_for:
            self.fail_next_for = None
            raise ConnectionError("store went away")
        await super().update_membership_role(membership_id, new_role)


async def main() -> None:
    db_path = Path(tempfile.mkdtemp()) / "summit.db"
    clock = TestTimeProvider(datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc))
    store = FlakyStore(db_path, time_provider=clock)
    gov = WorkspaceGovernance(store, time_provider=clock)

    print_section("1. Building the hierarchy")
    root = await store.create_workspace(SCOPE, "Summit 2026", WorkspaceType.ROOT)
    clock.advance_seconds(1)
    ops = await store.create_workspace(
        SCOPE, "Operations", WorkspaceType.DEPARTMENT, parent_id=root.id,
        department_id="operations",
    )
    clock.advance_seconds(1)
    catering = await store.create_workspace(
        SCOPE, "Catering", WorkspaceType.COMMITTEE, parent_id=ops.id,
        department_id="operations",
    )

    await store.add_member(ops.id, "u-alice", WorkspaceRole.OPERATIONS_MANAGER,
                           user_name="Alice")
    bob = await store.add_member(ops.id, "u-bob", WorkspaceRole.EVENT_COORDINATOR,
                                 user_name="Bob")
    carol = await store.add_member(ops.id, "u-carol", WorkspaceRole.EVENT_COORDINATOR,
                                   user_name="Carol")
    await store.add_member(catering.id, "u-dan", WorkspaceRole.CATERING_LEAD, user_name="Dan")

    path = await gov.ancestor_path(SCOPE, catering.id)
    print(f"Breadcrumb: {breadcrumb_labels(path)}\n")
    await print_authority(gov)

    print_section("2. Alice hands Operations to Bob")
    outcome = await gov.delegate_role(
        SCOPE,
        DelegateRole(workspace_id=ops.id, new_holder_membership_id=bob.id,
                     acting_user_id="u-alice"),
    )
    print(f"✓ {role_label(outcome.responsible_role)} now held by Bob")
    print(f"  Alice is now {role_label(outcome.demoted.role)}")
    if outcome.self_delegation:
        print("  (Alice delegated her own role)")

    print_section("3. Bob hands Operations to Carol, demotion fails")
    store.fail_next_for = bob.id
    try:
        await gov.delegate_role(
            SCOPE, DelegateRole(workspace_id=ops.id, new_holder_membership_id=carol.id)
        )
    except PartialDelegationFailure as failure:
        print(f"⚠️  {failure}")
        report = await gov.integrity_report(SCOPE)
        print(f"  Holder conflicts: {report.holder_conflicts}")

        print("\nRetrying the demotion...")
        await gov.retry_demotion(failure)

    report = await gov.integrity_report(SCOPE)
    print(f"✓ Consistent again: {report.is_consistent}\n")
    await print_authority(gov)


if __name__ == "__main__":
    asyncio.run(main())
