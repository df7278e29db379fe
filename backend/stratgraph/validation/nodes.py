"""
PURPOSE: Per-node validation for condition and action nodes.

validate_node() dispatches on the node's `type` tag. Successor references
are checked against the set of node ids in the graph; reachability is left
to validation/connectivity.py.

CALLED BY: validation/validator.py
"""

from typing import AbstractSet, Any

from stratgraph.config.constants import (
    ACTION_REQUIRED_PARAMS,
    BINARY_EXPR_KIND,
    ENTRY_ACTIONS,
    SYMBOL_EXEMPT_ACTIONS,
    NodeType,
)
from stratgraph.utils.validators import validate_node_id
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.expressions import validate_binary_expr
from stratgraph.validation.operands import is_number
from stratgraph.validation.result import Diagnostics, ErrorCategory

CONDITION_SUCCESSORS = ("nextIfTrue", "nextIfFalse")


def implicit_branch_message(node_id: str, branch: str) -> str:
    """Shared wording so the node and connectivity passes report one finding."""
    return f"Condition node {node_id}: no explicit {branch} (implying NO_TRADE)"


def _check_reference(
    node: dict,
    field_name: str,
    label: str,
    all_node_ids: AbstractSet[str],
    diagnostics: Diagnostics,
) -> bool:
    """
    Check one successor field. Returns False when the field is null/absent.
    """
    target = node.get(field_name)
    node_id = node.get("id")
    if target is None:
        return False
    if not isinstance(target, str):
        diagnostics.error(ErrorCategory.SCHEMA, f"{label} {node_id}: {field_name} must be a node id string or null", node_id)
    elif target not in all_node_ids:
        diagnostics.error(
            ErrorCategory.REFERENCE,
            f"{label} {node_id}: {field_name} points to non-existent node '{target}'",
            node_id,
        )
    return True


def validate_condition_node(node: dict, all_node_ids: AbstractSet[str], ctx: ValidationContext) -> Diagnostics:
    diagnostics = Diagnostics()
    node_id = node.get("id")
    expr = node.get("expr")

    if expr is None:
        diagnostics.error(ErrorCategory.SEMANTIC, f"Condition node {node_id}: missing expression", node_id)
    elif not isinstance(expr, dict):
        diagnostics.error(ErrorCategory.SCHEMA, f"Condition node {node_id}: expr must be an object", node_id)
    elif expr.get("kind") != BINARY_EXPR_KIND:
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"Condition node {node_id}: expr.kind must be 'binary', got '{expr.get('kind')}'",
            node_id,
        )
    else:
        diagnostics.extend(validate_binary_expr(expr, ctx, node_id))

    for branch in CONDITION_SUCCESSORS:
        if not _check_reference(node, branch, "Condition node", all_node_ids, diagnostics):
            diagnostics.warn(ErrorCategory.FINANCIAL, implicit_branch_message(node_id, branch), node_id)

    return diagnostics


def validate_action_node(node: dict, all_node_ids: AbstractSet[str], ctx: ValidationContext) -> Diagnostics:
    diagnostics = Diagnostics()
    node_id = node.get("id")
    action_type = node.get("actionType")

    # Reference integrity is checked regardless of the action's own defects
    _check_reference(node, "next", "Action node", all_node_ids, diagnostics)

    if not action_type:
        diagnostics.error(ErrorCategory.SEMANTIC, f"Action node {node_id}: missing actionType", node_id)
        return diagnostics

    if not ctx.catalog.has_action(action_type):
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"Action node {node_id}: unsupported actionType '{action_type}'. "
            f"Valid: {', '.join(ctx.catalog.action_names())}",
            node_id,
        )
        return diagnostics

    symbol = node.get("symbol")
    if symbol is not None and not isinstance(symbol, str):
        diagnostics.error(ErrorCategory.SCHEMA, f"Action node {node_id}: symbol must be a string", node_id)
    elif action_type not in SYMBOL_EXEMPT_ACTIONS and not symbol:
        diagnostics.warn(
            ErrorCategory.SEMANTIC,
            f"Action node {node_id}: {action_type} should have a symbol (will use top-level symbol)",
            node_id,
        )

    qty = node.get("qty")
    if action_type in ENTRY_ACTIONS and qty is None:
        diagnostics.error(ErrorCategory.SEMANTIC, f"Action node {node_id}: {action_type} requires qty", node_id)

    if qty is not None and (not is_number(qty) or qty <= 0):
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"Action node {node_id}: qty must be a positive number, got {qty!r}",
            node_id,
        )

    # qtyType is required alongside qty, and must be a known kind whenever given
    qty_type = node.get("qtyType", node.get("qty_type"))
    if qty is not None or qty_type is not None:
        allowed = ctx.catalog.quantity_types
        if qty_type not in allowed:
            diagnostics.error(
                ErrorCategory.SCHEMA,
                f"Action node {node_id}: qtyType must be one of [{', '.join(allowed)}], got '{qty_type}'",
                node_id,
            )

    params = node.get("params")
    if params is not None and not isinstance(params, dict):
        diagnostics.error(ErrorCategory.SCHEMA, f"Action node {node_id}: params must be an object", node_id)
        params = None

    required_param = ACTION_REQUIRED_PARAMS.get(action_type)
    if required_param and (not params or params.get(required_param) is None):
        diagnostics.warn(
            ErrorCategory.SEMANTIC,
            f"Action node {node_id}: {action_type} should have params.{required_param}",
            node_id,
        )

    return diagnostics


def validate_node(node: Any, all_node_ids: AbstractSet[str], ctx: ValidationContext) -> Diagnostics:
    """
    PURPOSE: Validate one graph node against its shape rules.

    Args:
        node: Raw node object.
        all_node_ids: Ids of every node in the graph, for reference checks.
        ctx: Validation context.

    Returns:
        Diagnostics: Never raises; every defect is a returned diagnostic.
    """
    if not isinstance(node, dict):
        diagnostics = Diagnostics()
        diagnostics.error(ErrorCategory.SCHEMA, f"Node must be an object, got {type(node).__name__}")
        return diagnostics

    node_id = node.get("id")
    node_type = node.get("type")

    if not node_id or not isinstance(node_id, str):
        diagnostics = Diagnostics()
        diagnostics.error(ErrorCategory.SCHEMA, f"Node of type '{node_type}' is missing a string id")
        return diagnostics

    diagnostics = Diagnostics()
    # Ids end up in generated code, so they must stay identifier-like
    if not validate_node_id(node_id):
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"Node {node_id}: id must be 1-64 letters, digits, '_' or '-'",
            node_id,
        )

    if node_type == NodeType.CONDITION:
        return diagnostics.extend(validate_condition_node(node, all_node_ids, ctx))
    if node_type == NodeType.ACTION:
        return diagnostics.extend(validate_action_node(node, all_node_ids, ctx))

    diagnostics.error(
        ErrorCategory.SCHEMA,
        f"Node {node_id}: invalid type '{node_type}', must be 'condition' or 'action'",
        node_id,
    )
    return diagnostics
