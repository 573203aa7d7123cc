"""
Delegation Engine - Hand a workspace's responsible role to a new holder

A delegation is two independent role writes through the NodeStore:

1. promote: new holder gets the responsible role
2. demote: previous holder (if any) gets the fallback role for the
   level of the delegated role (owner -> manager role, manager -> lead
   role, lead -> coordinator role, coordinator -> volunteer coordinator)

Write 2 is issued only after write 1 has completed. Between the two, the
workspace has two holders of the role; readers running concurrently may
see that. There is no shared transaction and no automatic rollback, so
the outcomes are:

- both writes done: DelegationOutcome
- write 1 failed: DelegationFailed, nothing changed
- write 2 failed: PartialDelegationFailure, new holder promoted and old
  holder not demoted; complete_demotion() retries just the demotion

Callers must resolve the current holder right before delegating; a stale
current holder is demoted all the same.
"""

from collections.abc import Iterable

from workspace_governance.hierarchy.authority import (
    hierarchy_level_for_node,
    role_level,
)
from workspace_governance.hierarchy.models import (
    DelegationOutcome,
    HierarchyLevel,
    TeamMembership,
    WorkspaceNode,
    WorkspaceRole,
)
from workspace_governance.hierarchy.policy import HierarchyPolicy, default_hierarchy_policy
from workspace_governance.hierarchy.store import NodeStore
from workspace_governance.kernel.errors import (
    DelegationFailed,
    InvalidDelegationTarget,
    InvariantViolation,
    NoResponsibleRole,
    PartialDelegationFailure,
)
from workspace_governance.kernel.logging import LogOperation, get_logger
from workspace_governance.kernel.metrics import demotion_retries_total, record_delegation
from workspace_governance.kernel.time import RealTimeProvider, TimeProvider

logger = get_logger(__name__)


def is_self_delegation(
    current_holder: TeamMembership | None, acting_user_id: str | None
) -> bool:
    """True when the person delegating is giving away their own role"""
    return (
        current_holder is not None
        and acting_user_id is not None
        and current_holder.user_id == acting_user_id
    )


def eligible_delegates(
    node: WorkspaceNode,
    current_holder: TeamMembership | None,
    memberships: Iterable[TeamMembership],
) -> list[TeamMembership]:
    """Active members of node who could take over the role (current holder excluded)"""
    excluded_user = current_holder.user_id if current_holder else None
    return [
        m
        for m in memberships
        if m.workspace_id == node.id and m.is_active() and m.user_id != excluded_user
    ]


def validate_delegation_target(
    node: WorkspaceNode,
    current_holder: TeamMembership | None,
    new_holder: TeamMembership,
) -> None:
    """
    Check the preconditions of a delegation

    Raises:
        InvalidDelegationTarget: If new_holder is not an active member of
            node, is the current holder's membership, or the current
            holder belongs to a different workspace
    """
    if new_holder.workspace_id != node.id:
        raise InvalidDelegationTarget(
            node.id, new_holder.id, f"membership belongs to workspace {new_holder.workspace_id}"
        )
    if not new_holder.is_active():
        raise InvalidDelegationTarget(
            node.id, new_holder.id, f"membership is {new_holder.status.value}, not ACTIVE"
        )
    if current_holder is None:
        return
    if current_holder.id == new_holder.id:
        raise InvalidDelegationTarget(
            node.id, new_holder.id, "membership already holds the role"
        )
    if current_holder.workspace_id != node.id:
        raise InvalidDelegationTarget(
            node.id,
            current_holder.id,
            f"current holder belongs to workspace {current_holder.workspace_id}",
        )


class DelegationEngine:
    """
    Executes role delegations against a NodeStore

    The engine keeps no state between calls; every delegation works on
    the memberships passed in.
    """

    def __init__(
        self,
        store: NodeStore,
        policy: HierarchyPolicy = default_hierarchy_policy,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Args:
            store: Where role writes go
            policy: Catalogs, including the level -> fallback role table
            time_provider: For outcome timestamps (injectable for testing)
        """
        self.store = store
        self.policy = policy
        self.time_provider = time_provider or RealTimeProvider()

    def delegation_level(
        self, node: WorkspaceNode, responsible_role: WorkspaceRole
    ) -> HierarchyLevel:
        """Level of the delegated role: from the workspace, else from the catalogs"""
        return hierarchy_level_for_node(node) or role_level(responsible_role, self.policy)

    def demotion_target(
        self, node: WorkspaceNode, responsible_role: WorkspaceRole
    ) -> WorkspaceRole:
        """Role the outgoing holder of responsible_role on node is demoted to"""
        return self.policy.fallback_role(self.delegation_level(node, responsible_role))

    async def delegate(
        self,
        node: WorkspaceNode,
        responsible_role: WorkspaceRole | None,
        current_holder: TeamMembership | None,
        new_holder: TeamMembership,
        acting_user_id: str | None = None,
    ) -> DelegationOutcome:
        """
        Transfer responsible_role on node from current_holder to new_holder

        Self-delegation (acting_user_id is the current holder) is allowed
        and only logged; warning the user is the caller's job.

        Args:
            node: Workspace being governed
            responsible_role: Role resolved for node
            current_holder: Active holder right now, None if vacant
            new_holder: Active membership on node to promote
            acting_user_id: Who asked for the delegation, if known

        Returns:
            DelegationOutcome with the memberships as written

        Raises:
            NoResponsibleRole: If responsible_role is None
            InvalidDelegationTarget: If a precondition fails
            DelegationFailed: If the promotion write failed (no change)
            PartialDelegationFailure: If the demotion write failed
        """
        if responsible_role is None:
            record_delegation("NONE", "rejected")
            raise NoResponsibleRole(node.id)

        level = self.delegation_level(node, responsible_role)
        try:
            validate_delegation_target(node, current_holder, new_holder)
        except InvariantViolation:
            record_delegation(level.name, "rejected")
            raise

        self_delegation = is_self_delegation(current_holder, acting_user_id)

        with LogOperation(
            logger,
            "delegate_role",
            workspace_id=node.id,
            responsible_role=responsible_role.value,
            level=level.name,
            new_holder_id=new_holder.id,
            current_holder_id=current_holder.id if current_holder else None,
            acting_user_id=acting_user_id,
        ) as op:
            if self_delegation:
                logger.warning(
                    "Holder is delegating their own role",
                    workspace_id=node.id,
                    responsible_role=responsible_role.value,
                )

            # Write 1: promote
            if new_holder.role == responsible_role:
                logger.info(
                    "New holder already has the role, promotion skipped",
                    workspace_id=node.id,
                    membership_id=new_holder.id,
                )
            else:
                try:
                    await self.store.update_membership_role(new_holder.id, responsible_role)
                except Exception as e:
                    record_delegation(level.name, "failed", op.elapsed_seconds)
                    raise DelegationFailed(node.id, new_holder.id, cause=e) from e

            promoted = new_holder.model_copy(update={"role": responsible_role})

            # Write 2: demote
            demoted: TeamMembership | None = None
            if current_holder is not None:
                demoted_role = self.policy.fallback_role(level)
                try:
                    await self.store.update_membership_role(current_holder.id, demoted_role)
                except Exception as e:
                    record_delegation(level.name, "partial", op.elapsed_seconds)
                    raise PartialDelegationFailure(
                        workspace_id=node.id,
                        promoted_membership_id=new_holder.id,
                        stale_membership_id=current_holder.id,
                        responsible_role=responsible_role,
                        pending_role=demoted_role,
                        cause=e,
                    ) from e
                demoted = current_holder.model_copy(update={"role": demoted_role})

            record_delegation(level.name, "success", op.elapsed_seconds)

        return DelegationOutcome(
            workspace_id=node.id,
            responsible_role=responsible_role,
            level=level,
            promoted=promoted,
            demoted=demoted,
            self_delegation=self_delegation,
            completed_at=self.time_provider.now(),
        )

    async def complete_demotion(self, failure: PartialDelegationFailure) -> None:
        """
        Retry the demotion step of a partially applied delegation

        Raises:
            PartialDelegationFailure: Again, with the new cause, if the
                write still fails
        """
        with LogOperation(
            logger,
            "complete_demotion",
            workspace_id=failure.workspace_id,
            membership_id=failure.stale_membership_id,
            pending_role=failure.pending_role.value,
        ):
            try:
                await self.store.update_membership_role(
                    failure.stale_membership_id, failure.pending_role
                )
            except Exception as e:
                demotion_retries_total.labels(status="failure").inc()
                raise PartialDelegationFailure(
                    workspace_id=failure.workspace_id,
                    promoted_membership_id=failure.promoted_membership_id,
                    stale_membership_id=failure.stale_membership_id,
                    responsible_role=failure.responsible_role,
                    pending_role=failure.pending_role,
                    cause=e,
                ) from e
            demotion_retries_total.labels(status="success").inc()
