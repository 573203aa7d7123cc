"""
Hierarchy Domain Models - Workspaces, memberships and governance roles

An event's staff is organized as a tree of workspaces, at most four levels
deep: the root workspace, departments, committees, and teams. Each
workspace is governed by exactly one responsible role, and team
memberships carry the role a person plays on one workspace.
"""

from datetime import datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, Field


class WorkspaceType(str, Enum):
    """
    Hierarchy tier of a workspace

    ROOT (level 1) > DEPARTMENT (2) > COMMITTEE (3) > TEAM (4)
    """

    ROOT = "ROOT"
    DEPARTMENT = "DEPARTMENT"
    COMMITTEE = "COMMITTEE"
    TEAM = "TEAM"


class WorkspaceStatus(str, Enum):
    """Workspace lifecycle - opaque to the engine beyond filtering"""

    PROVISIONING = "PROVISIONING"
    ACTIVE = "ACTIVE"
    WINDING_DOWN = "WINDING_DOWN"
    DISSOLVED = "DISSOLVED"
    ARCHIVED = "ARCHIVED"


class MembershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


class HierarchyLevel(IntEnum):
    """
    Authority tier of a role (lower value = more authority)

    OWNER: full control of the event workspace
    MANAGER: department strategy, manages every level below
    LEAD: committee execution, manages coordinators
    COORDINATOR: task execution
    """

    OWNER = 1
    MANAGER = 2
    LEAD = 3
    COORDINATOR = 4


class WorkspaceRole(str, Enum):
    """Governance roles a team membership can hold"""

    # Level 1
    WORKSPACE_OWNER = "WORKSPACE_OWNER"

    # Level 2 - one manager per department
    OPERATIONS_MANAGER = "OPERATIONS_MANAGER"
    GROWTH_MANAGER = "GROWTH_MANAGER"
    CONTENT_MANAGER = "CONTENT_MANAGER"
    TECH_FINANCE_MANAGER = "TECH_FINANCE_MANAGER"
    VOLUNTEERS_MANAGER = "VOLUNTEERS_MANAGER"

    # Level 3 - committee leads
    EVENT_LEAD = "EVENT_LEAD"
    CATERING_LEAD = "CATERING_LEAD"
    LOGISTICS_LEAD = "LOGISTICS_LEAD"
    FACILITY_LEAD = "FACILITY_LEAD"
    MARKETING_LEAD = "MARKETING_LEAD"
    COMMUNICATION_LEAD = "COMMUNICATION_LEAD"
    SPONSORSHIP_LEAD = "SPONSORSHIP_LEAD"
    SOCIAL_MEDIA_LEAD = "SOCIAL_MEDIA_LEAD"
    CONTENT_LEAD = "CONTENT_LEAD"
    SPEAKER_LIAISON_LEAD = "SPEAKER_LIAISON_LEAD"
    JUDGE_LEAD = "JUDGE_LEAD"
    MEDIA_LEAD = "MEDIA_LEAD"
    FINANCE_LEAD = "FINANCE_LEAD"
    REGISTRATION_LEAD = "REGISTRATION_LEAD"
    TECHNICAL_LEAD = "TECHNICAL_LEAD"
    IT_LEAD = "IT_LEAD"
    VOLUNTEERS_LEAD = "VOLUNTEERS_LEAD"

    # Level 4 - coordinators
    EVENT_COORDINATOR = "EVENT_COORDINATOR"
    CATERING_COORDINATOR = "CATERING_COORDINATOR"
    LOGISTICS_COORDINATOR = "LOGISTICS_COORDINATOR"
    FACILITY_COORDINATOR = "FACILITY_COORDINATOR"
    MARKETING_COORDINATOR = "MARKETING_COORDINATOR"
    COMMUNICATION_COORDINATOR = "COMMUNICATION_COORDINATOR"
    SPONSORSHIP_COORDINATOR = "SPONSORSHIP_COORDINATOR"
    SOCIAL_MEDIA_COORDINATOR = "SOCIAL_MEDIA_COORDINATOR"
    CONTENT_COORDINATOR = "CONTENT_COORDINATOR"
    SPEAKER_LIAISON_COORDINATOR = "SPEAKER_LIAISON_COORDINATOR"
    JUDGE_COORDINATOR = "JUDGE_COORDINATOR"
    MEDIA_COORDINATOR = "MEDIA_COORDINATOR"
    FINANCE_COORDINATOR = "FINANCE_COORDINATOR"
    REGISTRATION_COORDINATOR = "REGISTRATION_COORDINATOR"
    TECHNICAL_COORDINATOR = "TECHNICAL_COORDINATOR"
    IT_COORDINATOR = "IT_COORDINATOR"
    VOLUNTEER_COORDINATOR = "VOLUNTEER_COORDINATOR"


class WorkspaceNode(BaseModel):
    """
    One workspace record as stored

    Attributes:
        id: Unique identifier
        name: Display label (committees are matched to the catalog by name)
        parent_id: Parent workspace (None for a root)
        type: Hierarchy tier; None for legacy rows without one
        department_id: Key into the department catalog
        status: Lifecycle tag
    """

    id: str
    name: str
    parent_id: str | None = None
    type: WorkspaceType | None = None
    department_id: str | None = None
    status: WorkspaceStatus = WorkspaceStatus.ACTIVE

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "ws-catering",
                    "name": "Catering",
                    "parent_id": "ws-operations",
                    "type": "COMMITTEE",
                    "department_id": "operations",
                    "status": "ACTIVE",
                }
            ]
        }
    }


class TreeNode(WorkspaceNode):
    """
    Workspace placed in a built tree

    depth is derived (root = 1) and never read from storage.
    """

    children: list["TreeNode"] = Field(default_factory=list)
    depth: int = 1

    @classmethod
    def from_node(cls, node: WorkspaceNode) -> "TreeNode":
        return cls(**node.model_dump(include=set(WorkspaceNode.model_fields)))


class TeamMembership(BaseModel):
    """
    A person's role on one workspace

    Attributes:
        id: Unique membership identifier
        workspace_id: Workspace the role applies to
        user_id: Member identity
        role: Role held on that workspace
        status: Only ACTIVE memberships count as holders
        joined_at: When the member joined
        user_name: Display name, presentation only
        user_email: Contact, presentation only
    """

    id: str
    workspace_id: str
    user_id: str
    role: WorkspaceRole
    status: MembershipStatus = MembershipStatus.ACTIVE
    joined_at: datetime
    user_name: str | None = None
    user_email: str | None = None

    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE


class AncestorPath(BaseModel):
    """
    Root-first chain of workspaces ending at the target

    Each node carries its depth along the path, so a path ending at a
    workspace under a loaded root matches that workspace's tree depth.

    cycle_detected is set when the walk stopped because a workspace id
    came up twice; nodes then holds what was collected before the repeat.
    """

    nodes: list[TreeNode] = Field(default_factory=list)
    cycle_detected: bool = False

    @property
    def ids(self) -> list[str]:
        return [node.id for node in self.nodes]


class AuthorityAssignment(BaseModel):
    """Responsible role of one workspace and who holds it (None = vacant)"""

    workspace_id: str
    workspace_name: str
    depth: int
    level: HierarchyLevel | None
    responsible_role: WorkspaceRole | None
    holder: TeamMembership | None = None

    @property
    def is_vacant(self) -> bool:
        return self.responsible_role is not None and self.holder is None


class DelegationOutcome(BaseModel):
    """
    Result of a completed delegation

    promoted is the new holder as written; demoted is the previous holder
    with their fallback role, or None when the role was vacant.
    """

    workspace_id: str
    responsible_role: WorkspaceRole
    level: HierarchyLevel
    promoted: TeamMembership
    demoted: TeamMembership | None = None
    self_delegation: bool = False
    completed_at: datetime


class IntegrityReport(BaseModel):
    """
    Authority health of one scope

    Attributes:
        scope_id: Scope that was checked
        workspace_count: Workspaces loaded
        depth_violations: Workspaces nested deeper than the policy allows
        holder_conflicts: Workspace id -> ids of memberships holding its role
        vacant: Workspaces whose responsible role has no holder
        ungoverned: Workspaces with no resolvable responsible role
    """

    scope_id: str
    workspace_count: int
    depth_violations: list[str] = Field(default_factory=list)
    holder_conflicts: dict[str, list[str]] = Field(default_factory=dict)
    vacant: list[str] = Field(default_factory=list)
    ungoverned: list[str] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.depth_violations and not self.holder_conflicts
