"""
Custom exceptions for Workspace Governance

Tree building and role resolution never raise for malformed data - orphans
become roots, unknown types resolve to no role, parent cycles end the walk.
Only delegation raises, and it must tell a clean failure apart from a
partial one because a partial failure leaves two holders of one role.
"""

from typing import Any


class GovernanceError(Exception):
    """Base exception for all Workspace Governance errors"""

    pass


class InvariantViolation(GovernanceError):
    """
    Raised when a hierarchy or authority invariant would be violated

    Examples: delegating to a member of another workspace, delegating
    a role to the membership that already holds it.
    """

    pass


class InvalidDelegationTarget(InvariantViolation):
    """Raised when the new holder cannot receive the role on this workspace"""

    def __init__(self, workspace_id: str, membership_id: str, reason: str) -> None:
        self.workspace_id = workspace_id
        self.membership_id = membership_id
        self.reason = reason
        super().__init__(
            f"Membership {membership_id} cannot take over the responsible role "
            f"of workspace {workspace_id}: {reason}"
        )


class NoResponsibleRole(InvariantViolation):
    """Raised when delegation is requested on a workspace with no governable role"""

    def __init__(self, workspace_id: str) -> None:
        self.workspace_id = workspace_id
        super().__init__(
            f"Workspace {workspace_id} has no responsible role - nothing to delegate"
        )


class DelegationFailed(GovernanceError):
    """
    Raised when a delegation did not complete

    Raised directly only when no write was committed: the previous holder
    still holds the role and nothing needs reconciling.
    """

    def __init__(
        self,
        workspace_id: str,
        membership_id: str,
        cause: BaseException | None = None,
        message: str = "",
    ) -> None:
        self.workspace_id = workspace_id
        self.membership_id = membership_id
        self.cause = cause
        super().__init__(
            message
            or f"Delegation on workspace {workspace_id} to membership {membership_id} "
            f"failed before any change was written: {cause}"
        )


class PartialDelegationFailure(DelegationFailed):
    """
    Raised when the new holder was promoted but the old holder was not demoted

    The workspace now has two active holders of the responsible role.
    Callers must retry the demotion (see DelegationEngine.complete_demotion)
    or escalate to an operator; this is never reported as success.
    """

    def __init__(
        self,
        workspace_id: str,
        promoted_membership_id: str,
        stale_membership_id: str,
        responsible_role: Any,
        pending_role: Any,
        cause: BaseException | None = None,
    ) -> None:
        self.promoted_membership_id = promoted_membership_id
        self.stale_membership_id = stale_membership_id
        self.responsible_role = responsible_role
        self.pending_role = pending_role
        role_name = getattr(responsible_role, "value", responsible_role)
        pending_name = getattr(pending_role, "value", pending_role)
        super().__init__(
            workspace_id,
            promoted_membership_id,
            cause=cause,
            message=(
                f"Delegation on workspace {workspace_id} is incomplete: membership "
                f"{promoted_membership_id} now holds {role_name} but membership "
                f"{stale_membership_id} could not be demoted to {pending_name} ({cause})"
            ),
        )


class WorkspaceNotFound(GovernanceError):
    """Raised when workspace does not exist in the loaded scope"""

    def __init__(self, workspace_id: str) -> None:
        self.workspace_id = workspace_id
        super().__init__(f"Workspace {workspace_id} not found")


class MembershipNotFound(GovernanceError):
    """Raised when a team membership does not exist or is not active"""

    def __init__(self, membership_id: str) -> None:
        self.membership_id = membership_id
        super().__init__(f"Membership {membership_id} not found")


class PolicyLoadError(GovernanceError):
    """Raised when a hierarchy policy file cannot be read or validated"""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not load hierarchy policy from {path}: {reason}")
