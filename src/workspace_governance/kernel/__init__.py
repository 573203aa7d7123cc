"""
Kernel - Shared infrastructure for the hierarchy engine

Errors, structured logging, metrics, retry, ids and an injectable clock.
Nothing in here knows about workspaces or roles.
"""

from workspace_governance.kernel.errors import (
    DelegationFailed,
    GovernanceError,
    InvalidDelegationTarget,
    InvariantViolation,
    MembershipNotFound,
    NoResponsibleRole,
    PartialDelegationFailure,
    PolicyLoadError,
    WorkspaceNotFound,
)
from workspace_governance.kernel.ids import generate_id
from workspace_governance.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Errors
    "GovernanceError",
    "InvariantViolation",
    "InvalidDelegationTarget",
    "NoResponsibleRole",
    "DelegationFailed",
    "PartialDelegationFailure",
    "WorkspaceNotFound",
    "MembershipNotFound",
    "PolicyLoadError",
]
