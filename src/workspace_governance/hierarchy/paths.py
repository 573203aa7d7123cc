"""
Path Resolver - Ancestor chain of one workspace

Used for breadcrumbs and for expanding a tree view down to the current
workspace. This is the only place that follows parent pointers, so it
carries its own cycle guard: a repeated id ends the walk and the partial
path is returned with cycle_detected set.
"""

from collections.abc import Iterable

from workspace_governance.hierarchy.models import AncestorPath, TreeNode, WorkspaceNode
from workspace_governance.kernel.logging import get_logger
from workspace_governance.kernel.metrics import ancestor_cycles_detected_total

logger = get_logger(__name__)


def resolve_ancestor_path(
    node_id: str, all_nodes: Iterable[WorkspaceNode]
) -> AncestorPath:
    """
    Walk from node_id up to its root

    Stops at a node without parent, at a parent id that is not loaded,
    or at the first id seen twice.

    Args:
        node_id: Target workspace
        all_nodes: Workspace records of the scope

    Returns:
        Root-first path ending with the target, each node carrying its
        depth along the path (first node = 1); empty if node_id is unknown
    """
    index = {node.id: node for node in all_nodes}

    reversed_path: list[WorkspaceNode] = []
    visited: set[str] = set()
    cycle_detected = False

    current = index.get(node_id)
    while current is not None:
        if current.id in visited:
            cycle_detected = True
            logger.warning(
                "Cycle in workspace parent chain, path truncated",
                workspace_id=node_id,
                repeated_id=current.id,
            )
            ancestor_cycles_detected_total.inc()
            break
        visited.add(current.id)
        reversed_path.append(current)
        current = index.get(current.parent_id) if current.parent_id else None

    reversed_path.reverse()
    path_nodes = [TreeNode.from_node(node) for node in reversed_path]
    for depth, node in enumerate(path_nodes, start=1):
        node.depth = depth
    return AncestorPath(nodes=path_nodes, cycle_detected=cycle_detected)


def ancestors_to_expand(node_id: str, all_nodes: Iterable[WorkspaceNode]) -> set[str]:
    """Ids of every loaded ancestor of node_id (the target itself excluded)"""
    path = resolve_ancestor_path(node_id, all_nodes)
    return {node.id for node in path.nodes if node.id != node_id}


def breadcrumb_labels(path: AncestorPath, separator: str = " / ") -> str:
    """Render a path as 'Root / Department / Committee'"""
    return separator.join(node.name for node in path.nodes)
