"""
Workspace Governance - Hierarchical workspace and role authority engine

Turns flat workspace records into a depth-labeled tree, resolves the one
role that governs each workspace, and hands that role from one member to
another with a two-step promote/demote delegation.
"""

from workspace_governance.governance import WorkspaceGovernance
from workspace_governance.hierarchy.store import InMemoryNodeStore, SQLiteNodeStore

__version__ = "0.1.0"
__all__ = ["WorkspaceGovernance", "InMemoryNodeStore", "SQLiteNodeStore", "__version__"]
