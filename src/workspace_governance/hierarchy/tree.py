"""
Tree Builder - Flat parent-pointer records to a depth-labeled tree

Workspaces are stored flat, each with an optional parent id. Building the
tree is an index-then-attach pass over the records; nothing here follows
a parent chain, so a corrupted chain cannot hang the build.

Every input workspace appears exactly once in the output. A workspace
whose parent is not among the loaded records (another scope, deleted) is
surfaced as a root, and so is the first member reached of any parent
cycle, since a cycle has no way up to a real root.
"""

from collections.abc import Iterable, Iterator, Mapping

from workspace_governance.hierarchy.models import TreeNode, WorkspaceNode
from workspace_governance.hierarchy.policy import MAX_WORKSPACE_DEPTH
from workspace_governance.kernel.logging import get_logger
from workspace_governance.kernel.metrics import (
    tree_builds_total,
    tree_nodes_reclassified_total,
)

logger = get_logger(__name__)


def build_tree(nodes: Iterable[WorkspaceNode]) -> list[TreeNode]:
    """
    Build the workspace forest from a flat list

    Pass 1 indexes every record by id as a childless depth-1 node
    (duplicate ids: the last record wins). Pass 2 attaches each node to
    its parent when the parent was loaded, otherwise keeps it as a root.
    Depths are then assigned top-down from the roots, so records may
    arrive in any order.

    Args:
        nodes: Workspace records of one scope

    Returns:
        Root nodes in input order, each carrying its subtree
    """
    index: dict[str, TreeNode] = {}
    for node in nodes:
        index[node.id] = TreeNode.from_node(node)

    roots: list[TreeNode] = []
    parent_of: dict[str, TreeNode] = {}

    for node in index.values():
        parent = index.get(node.parent_id) if node.parent_id else None
        if parent is None or parent is node:
            if node.parent_id:
                logger.debug(
                    "Parent not loaded, workspace surfaced as root",
                    workspace_id=node.id,
                    parent_id=node.parent_id,
                )
                tree_nodes_reclassified_total.labels(reason="unresolved_parent").inc()
            roots.append(node)
        else:
            parent.children.append(node)
            parent_of[node.id] = parent

    placed = _assign_depths(roots)

    # Anything not reached from a root sits on or under a parent cycle
    for node in index.values():
        if node.id in placed:
            continue
        member = _cycle_member(node, parent_of)
        # Identity match: model equality would recurse into the cycle
        siblings = parent_of[member.id].children
        siblings[:] = [child for child in siblings if child is not member]
        logger.warning(
            "Parent cycle detected, workspace surfaced as root",
            workspace_id=member.id,
            parent_id=member.parent_id,
        )
        tree_nodes_reclassified_total.labels(reason="parent_cycle").inc()
        roots.append(member)
        placed |= _assign_depths([member])

    tree_builds_total.inc()
    return roots


def _cycle_member(node: TreeNode, parent_of: Mapping[str, TreeNode]) -> TreeNode:
    """
    Climb from an unreached node to the first id that repeats

    Unreached nodes always have a loaded, unreached parent, so the climb
    ends inside the cycle the node hangs from.
    """
    seen: set[str] = set()
    current = node
    while current.id not in seen:
        seen.add(current.id)
        current = parent_of[current.id]
    return current


def _assign_depths(roots: list[TreeNode]) -> set[str]:
    """Label depths top-down from the given roots; returns the ids reached"""
    reached: set[str] = set()
    stack: list[tuple[TreeNode, int]] = [(root, 1) for root in roots]
    while stack:
        node, depth = stack.pop()
        if node.id in reached:
            continue
        reached.add(node.id)
        node.depth = depth
        stack.extend((child, depth + 1) for child in node.children)
    return reached


def iter_tree(roots: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Pre-order walk of a built forest (parents before children)"""
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def index_tree(roots: Iterable[TreeNode]) -> dict[str, TreeNode]:
    """Map workspace id to its node in a built forest"""
    return {node.id: node for node in iter_tree(roots)}


def find_depth_violations(
    roots: Iterable[TreeNode], max_depth: int = MAX_WORKSPACE_DEPTH
) -> list[TreeNode]:
    """
    List nodes nested deeper than the configured maximum

    Over-deep nesting is a configuration error upstream; the tree is
    still built and browsable, this only reports it.
    """
    return [node for node in iter_tree(roots) if node.depth > max_depth]


def calculate_workspace_depth(
    parent_id: str | None,
    parent_map: Mapping[str, str | None],
    max_depth: int = MAX_WORKSPACE_DEPTH,
) -> int:
    """
    Depth a new workspace would get under parent_id

    Walks at most max_depth links up parent_map (workspace id -> parent
    id), so the result is capped at max_depth + 1 and a cyclic chain
    still terminates.

    Args:
        parent_id: Intended parent (None for a new root)
        parent_map: Known workspaces and their parents
        max_depth: Configured maximum depth

    Returns:
        Depth of the new workspace (root = 1)
    """
    depth = 1
    current = parent_id
    seen: set[str] = set()
    while current is not None and current not in seen and depth <= max_depth:
        seen.add(current)
        depth += 1
        current = parent_map.get(current)
    return depth


def can_create_sub_workspace(
    parent_id: str | None,
    parent_map: Mapping[str, str | None],
    max_depth: int = MAX_WORKSPACE_DEPTH,
) -> bool:
    """Check whether a child workspace under parent_id stays within max_depth"""
    return calculate_workspace_depth(parent_id, parent_map, max_depth) <= max_depth
