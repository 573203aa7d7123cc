"""
Hierarchy Policy - Static catalogs that decide who governs what

The policy is configuration, not derived state: the department catalog
(one manager role per department), the committee catalog (lead and
coordinator role per committee), the fallback role an outgoing holder is
demoted to per hierarchy level, and the maximum nesting depth.
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from workspace_governance.hierarchy.models import HierarchyLevel, WorkspaceRole
from workspace_governance.kernel.errors import PolicyLoadError

MAX_WORKSPACE_DEPTH = 4


class DepartmentSpec(BaseModel):
    """One department of the catalog and the role that manages it"""

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    manager_role: WorkspaceRole


class CommitteeSpec(BaseModel):
    """One committee of a department with its lead and coordinator roles"""

    id: str = Field(..., min_length=1)
    name: str
    lead_role: WorkspaceRole
    coordinator_role: WorkspaceRole


def _committee(
    committee_id: str, name: str, lead: WorkspaceRole, coordinator: WorkspaceRole
) -> CommitteeSpec:
    return CommitteeSpec(
        id=committee_id, name=name, lead_role=lead, coordinator_role=coordinator
    )


R = WorkspaceRole

DEFAULT_DEPARTMENTS: list[DepartmentSpec] = [
    DepartmentSpec(
        id="operations",
        name="Operations",
        description="Event logistics, catering, facilities",
        manager_role=R.OPERATIONS_MANAGER,
    ),
    DepartmentSpec(
        id="growth",
        name="Growth",
        description="Marketing, sponsorship, communications",
        manager_role=R.GROWTH_MANAGER,
    ),
    DepartmentSpec(
        id="content",
        name="Content",
        description="Content creation, speakers, judges, media",
        manager_role=R.CONTENT_MANAGER,
    ),
    DepartmentSpec(
        id="tech_finance",
        name="Tech & Finance",
        description="Technical, IT, finance, registration",
        manager_role=R.TECH_FINANCE_MANAGER,
    ),
    DepartmentSpec(
        id="volunteers",
        name="Volunteers",
        description="Volunteer coordination and management",
        manager_role=R.VOLUNTEERS_MANAGER,
    ),
]

DEFAULT_COMMITTEES: dict[str, list[CommitteeSpec]] = {
    "operations": [
        _committee("event", "Event", R.EVENT_LEAD, R.EVENT_COORDINATOR),
        _committee("catering", "Catering", R.CATERING_LEAD, R.CATERING_COORDINATOR),
        _committee("logistics", "Logistics", R.LOGISTICS_LEAD, R.LOGISTICS_COORDINATOR),
        _committee("facility", "Facility", R.FACILITY_LEAD, R.FACILITY_COORDINATOR),
    ],
    "growth": [
        _committee("marketing", "Marketing", R.MARKETING_LEAD, R.MARKETING_COORDINATOR),
        _committee(
            "communication", "Communication", R.COMMUNICATION_LEAD, R.COMMUNICATION_COORDINATOR
        ),
        _committee(
            "sponsorship", "Sponsorship", R.SPONSORSHIP_LEAD, R.SPONSORSHIP_COORDINATOR
        ),
        _committee(
            "social_media", "Social Media", R.SOCIAL_MEDIA_LEAD, R.SOCIAL_MEDIA_COORDINATOR
        ),
    ],
    "content": [
        _committee("content", "Content", R.CONTENT_LEAD, R.CONTENT_COORDINATOR),
        _committee(
            "speaker_liaison",
            "Speaker Liaison",
            R.SPEAKER_LIAISON_LEAD,
            R.SPEAKER_LIAISON_COORDINATOR,
        ),
        _committee("judge", "Judge", R.JUDGE_LEAD, R.JUDGE_COORDINATOR),
        _committee("media", "Media", R.MEDIA_LEAD, R.MEDIA_COORDINATOR),
    ],
    "tech_finance": [
        _committee("finance", "Finance", R.FINANCE_LEAD, R.FINANCE_COORDINATOR),
        _committee(
            "registration", "Registration", R.REGISTRATION_LEAD, R.REGISTRATION_COORDINATOR
        ),
        _committee("technical", "Technical", R.TECHNICAL_LEAD, R.TECHNICAL_COORDINATOR),
        _committee("it", "IT", R.IT_LEAD, R.IT_COORDINATOR),
    ],
    "volunteers": [
        _committee("volunteers", "Volunteers", R.VOLUNTEERS_LEAD, R.VOLUNTEER_COORDINATOR),
    ],
}

DEFAULT_FALLBACK_ROLES: dict[HierarchyLevel, WorkspaceRole] = {
    HierarchyLevel.OWNER: R.OPERATIONS_MANAGER,
    HierarchyLevel.MANAGER: R.EVENT_LEAD,
    HierarchyLevel.LEAD: R.EVENT_COORDINATOR,
    HierarchyLevel.COORDINATOR: R.VOLUNTEER_COORDINATOR,
}


class HierarchyPolicy(BaseModel):
    """
    Catalogs and limits governing the workspace hierarchy

    The defaults describe a five-department event organization.
    Deployments with other departments supply their own policy
    (see load_policy).
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking catalog changes over time",
    )

    max_workspace_depth: int = Field(
        default=MAX_WORKSPACE_DEPTH,
        ge=1,
        le=16,
        description="Maximum nesting depth (root = 1)",
    )

    departments: list[DepartmentSpec] = Field(
        default_factory=lambda: [d.model_copy() for d in DEFAULT_DEPARTMENTS],
        description="Department catalog; each department has one manager role",
    )

    committees: dict[str, list[CommitteeSpec]] = Field(
        default_factory=lambda: {
            dept: [c.model_copy() for c in specs]
            for dept, specs in DEFAULT_COMMITTEES.items()
        },
        description="Committees per department id, in catalog order",
    )

    fallback_roles: dict[HierarchyLevel, WorkspaceRole] = Field(
        default_factory=lambda: dict(DEFAULT_FALLBACK_ROLES),
        description="Role an outgoing holder is demoted to, per level of the delegated role",
    )

    model_config = {
        "json_schema_extra": {
            "description": "Static catalogs for workspace authority resolution"
        },
    }

    def department(self, department_id: str | None) -> DepartmentSpec | None:
        """Look up a department by id (None if unknown)"""
        if department_id is None:
            return None
        for department in self.departments:
            if department.id == department_id:
                return department
        return None

    def committees_for(self, department_id: str | None) -> list[CommitteeSpec]:
        """Committees of a department in catalog order (empty if unknown)"""
        if department_id is None:
            return []
        return self.committees.get(department_id, [])

    def fallback_role(self, level: HierarchyLevel) -> WorkspaceRole:
        """
        Demotion target for an outgoing holder of a role at this level

        Levels missing from a custom table fall back to the next lower
        configured level, then to the coordinator default.
        """
        for candidate in HierarchyLevel:
            if candidate >= level and candidate in self.fallback_roles:
                return self.fallback_roles[candidate]
        return DEFAULT_FALLBACK_ROLES[HierarchyLevel.COORDINATOR]


def load_policy(path: str | Path) -> HierarchyPolicy:
    """
    Load a hierarchy policy from a JSON file

    Keys not present in the file keep their defaults.

    Raises:
        PolicyLoadError: If the file is missing, not JSON, or invalid
    """
    policy_path = Path(path)
    try:
        raw = json.loads(policy_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise PolicyLoadError(str(policy_path), "file not found") from e
    except json.JSONDecodeError as e:
        raise PolicyLoadError(str(policy_path), f"invalid JSON ({e})") from e

    try:
        return HierarchyPolicy.model_validate(raw)
    except ValidationError as e:
        raise PolicyLoadError(str(policy_path), str(e)) from e


# Default global policy instance
default_hierarchy_policy = HierarchyPolicy()
