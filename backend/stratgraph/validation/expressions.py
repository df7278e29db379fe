"""
PURPOSE: Validation of a condition node's binary comparison.

CALLED BY: validation/nodes.py
"""

from typing import Any

from stratgraph.validation.context import ValidationContext
from stratgraph.validation.operands import validate_operand
from stratgraph.validation.result import Diagnostics, ErrorCategory


def validate_binary_expr(expr: Any, ctx: ValidationContext, node_id: str) -> Diagnostics:
    """
    PURPOSE: Validate `{kind: "binary", op, left, right}` for one condition node.

    The operator must be one of the catalog's comparison operators; arithmetic
    operators are not valid as the top-level comparison. Both operands are
    checked even when the operator is bad, so one call reports everything.

    Args:
        expr: Raw expression object.
        ctx: Validation context.
        node_id: Owning node id, used to tag diagnostics.

    Returns:
        Diagnostics: Errors and warnings for the expression and its operands.
    """
    diagnostics = Diagnostics()
    where = f"Expression in node {node_id}"

    if not isinstance(expr, dict):
        diagnostics.error(ErrorCategory.SCHEMA, f"{where}: must be an object", node_id)
        return diagnostics

    op = expr.get("op")
    comparison = ctx.catalog.comparison_operators()
    if not op:
        diagnostics.error(ErrorCategory.SEMANTIC, f"{where}: missing operator", node_id)
    elif op in ctx.catalog.arithmetic_operators():
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"{where}: arithmetic operator '{op}' cannot be used as a comparison. "
            f"Valid: {', '.join(comparison)}",
            node_id,
        )
    elif op not in comparison:
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"{where}: invalid comparison operator '{op}'. Valid: {', '.join(comparison)}",
            node_id,
        )

    for side in ("left", "right"):
        operand = expr.get(side)
        if operand is None:
            diagnostics.error(ErrorCategory.SCHEMA, f"{where}: missing {side} operand", node_id)
            continue
        diagnostics.extend(validate_operand(operand, ctx, node_id, side))

    return diagnostics
