"""
Hierarchy Commands - Requests coming from the API/UI layer

Commands carry ids and plain values; the façade loads the records right before
acting so the current holder is never stale.
"""

from pydantic import BaseModel, Field

from workspace_governance.hierarchy.models import WorkspaceType


class DelegateRole(BaseModel):
    """
    Hand the responsible role of a workspace to one of its members

    The current holder is resolved at execution time and demoted to the
    fallback role for the workspace's level.
    """

    workspace_id: str = Field(..., min_length=1)
    new_holder_membership_id: str = Field(..., min_length=1)
    acting_user_id: str | None = None


class CreateSubWorkspace(BaseModel):
    """
    Create a workspace under parent_id

    The nesting limit is checked against the scope before the record is
    written; a None parent creates a new root.
    """

    scope_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    workspace_type: WorkspaceType | None = None
    parent_id: str | None = None
    department_id: str | None = None
