"""
PURPOSE: Whole-graph reachability and termination analysis.

Starting from entryNode, every path must end at an action node. A condition
with a null successor ends that branch as an implicit "no trade" (warning).
A node already fully explored is not descended again, which keeps the walk
linear in the number of nodes. Nodes on the current path are tracked
separately, so a branch that leads back into its own path is reported as a
cycle: an error by default, a warning when ctx.allow_cycles is set.

CALLED BY: validation/validator.py
"""

from typing import Any, Dict, List

from stratgraph.config.constants import NodeType
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.nodes import CONDITION_SUCCESSORS, implicit_branch_message
from stratgraph.validation.result import Diagnostics, ErrorCategory


def index_nodes(nodes: Any) -> Dict[str, dict]:
    """Map node id -> node for well-formed nodes; the first occurrence of an id wins."""
    index: Dict[str, dict] = {}
    if not isinstance(nodes, list):
        return index
    for node in nodes:
        if isinstance(node, dict) and isinstance(node.get("id"), str):
            index.setdefault(node["id"], node)
    return index


def _successors(node: dict) -> List[str]:
    fields = CONDITION_SUCCESSORS if node.get("type") == NodeType.CONDITION else ("next",)
    return [node[f] for f in fields if isinstance(node.get(f), str)]


def analyze_connectivity(graph: dict, ctx: ValidationContext) -> Diagnostics:
    """
    PURPOSE: Verify the entry node exists and that every reachable path terminates.

    Args:
        graph: Raw graph object with entryNode and nodes.
        ctx: Validation context (allow_cycles).

    Returns:
        Diagnostics: A missing entry node is the only fatal finding and
        short-circuits the rest of the analysis.
    """
    diagnostics = Diagnostics()
    index = index_nodes(graph.get("nodes"))
    entry = graph.get("entryNode")

    if not isinstance(entry, str) or entry not in index:
        diagnostics.error(ErrorCategory.REFERENCE, f"Entry node '{entry}' does not exist")
        return diagnostics

    explored = set()
    on_path = set()
    path: List[str] = []
    # Each frame: (node_id, remaining successors); iterative to keep deep chains off the call stack
    stack: List[tuple] = []

    def enter(node_id: str) -> None:
        node = index[node_id]
        if node.get("type") == NodeType.CONDITION:
            for branch in CONDITION_SUCCESSORS:
                if node.get(branch) is None:
                    diagnostics.warn(ErrorCategory.FINANCIAL, implicit_branch_message(node_id, branch), node_id)
        on_path.add(node_id)
        path.append(node_id)
        stack.append((node_id, iter(_successors(node))))

    enter(entry)
    while stack:
        node_id, successors = stack[-1]
        target = next(successors, None)
        if target is None:
            stack.pop()
            path.pop()
            on_path.discard(node_id)
            explored.add(node_id)
            continue
        if target not in index:
            # Dangling references are reported by the node pass
            continue
        if target in on_path:
            cycle = path[path.index(target):] + [target]
            message = f"Cycle detected: {' -> '.join(cycle)}"
            if ctx.allow_cycles:
                diagnostics.warn(ErrorCategory.REFERENCE, message, node_id)
            else:
                diagnostics.error(ErrorCategory.REFERENCE, message, node_id)
            continue
        if target in explored:
            continue
        enter(target)

    unreachable = [node_id for node_id in index if node_id not in explored]
    for node_id in unreachable:
        diagnostics.warn(ErrorCategory.STRUCTURAL, f"Node {node_id} is not reachable from entry node '{entry}'", node_id)

    return diagnostics
