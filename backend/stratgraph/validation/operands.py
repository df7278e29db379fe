"""
PURPOSE: Operand validation: literals, identifiers and (nested) function calls.

validate_operand() checks one operand against the catalog and recurses into
function-call arguments. Recursion is bounded by ctx.max_depth; an operand
nested deeper than that is reported as a schema error instead of walked.

CALLED BY: validation/expressions.py
"""

import math
from typing import Any, Iterator, Tuple

from stratgraph.config.constants import OperandKind
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.result import Diagnostics, ErrorCategory

VALID_OPERAND_KINDS = tuple(kind.value for kind in OperandKind)


def is_number(value: Any) -> bool:
    """True for finite int/float values; bool is excluded even though it subclasses int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _where(side: str, node_id: str) -> str:
    return f"Expression {side} in node {node_id}"


def _validate_offset(offset: Any, ctx: ValidationContext, node_id: str, diagnostics: Diagnostics) -> None:
    if not isinstance(offset, dict):
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"Offset in node {node_id}: must be an object with unit and value",
            node_id,
        )
        return

    units = ctx.catalog.offset_units()
    if offset.get("unit") not in units:
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"Offset in node {node_id}: invalid unit '{offset.get('unit')}'. Valid: {', '.join(units)}",
            node_id,
        )

    value = offset.get("value")
    if not is_number(value) or value < 0:
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"Offset in node {node_id}: value must be a non-negative number",
            node_id,
        )


def _validate_func_call(
    operand: dict,
    ctx: ValidationContext,
    node_id: str,
    side: str,
    depth: int,
    diagnostics: Diagnostics,
) -> None:
    name = operand.get("name")
    if not name or not isinstance(name, str):
        diagnostics.error(ErrorCategory.SCHEMA, f"{_where(side, node_id)}: funcCall must have name", node_id)
        return

    if not ctx.catalog.has_function(name):
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"{_where(side, node_id)}: unknown function '{name}'. "
            f"Valid: {', '.join(ctx.catalog.function_names())}",
            node_id,
        )
        return

    args = operand.get("args", [])
    if args is None:
        args = []
    if not isinstance(args, list):
        diagnostics.error(ErrorCategory.SCHEMA, f"Function {name} in node {node_id}: args must be an array", node_id)
        return

    spec = ctx.catalog.function_spec(name)
    required = spec.required_arg_count
    if len(args) < required:
        diagnostics.error(
            ErrorCategory.SEMANTIC,
            f"Function {name} in node {node_id}: requires {required} args, got {len(args)}",
            node_id,
        )
    elif len(args) > len(spec.args):
        diagnostics.warn(
            ErrorCategory.SEMANTIC,
            f"Function {name} in node {node_id}: accepts {len(spec.args)} args, got {len(args)}; extras are ignored",
            node_id,
        )

    for index, arg in enumerate(args):
        diagnostics.extend(validate_operand(arg, ctx, node_id, f"{side}.args[{index}]", depth + 1))


def validate_operand(
    operand: Any,
    ctx: ValidationContext,
    node_id: str,
    side: str = "operand",
    depth: int = 0,
) -> Diagnostics:
    """
    PURPOSE: Validate one expression operand, recursing into function arguments.

    Pure and side-effect free: every defect is returned as a diagnostic so a
    single traversal reports all of them.

    Args:
        operand: Raw operand object from the graph JSON.
        ctx: Validation context (catalog, depth limit).
        node_id: Owning node id, used to tag diagnostics.
        side: Position of the operand in the expression ("left", "right.args[0]"...).
        depth: Current nesting depth; the top-level operand is depth 0.

    Returns:
        Diagnostics: Errors and warnings for this operand subtree.
    """
    diagnostics = Diagnostics()
    where = _where(side, node_id)

    if depth > ctx.max_depth:
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"{where}: exceeds maximum nesting depth of {ctx.max_depth}",
            node_id,
        )
        return diagnostics

    if not isinstance(operand, dict):
        diagnostics.error(ErrorCategory.SCHEMA, f"{where}: operand must be an object", node_id)
        return diagnostics

    kind = operand.get("kind")
    if not kind:
        diagnostics.error(ErrorCategory.SCHEMA, f"{where}: missing 'kind' field", node_id)
        return diagnostics

    if kind not in VALID_OPERAND_KINDS:
        diagnostics.error(
            ErrorCategory.SCHEMA,
            f"{where}: invalid kind '{kind}'. Valid: {', '.join(VALID_OPERAND_KINDS)}",
            node_id,
        )
        return diagnostics

    value = operand.get("value")
    if kind == OperandKind.NUMBER_LITERAL:
        if not is_number(value):
            diagnostics.error(ErrorCategory.SCHEMA, f"{where}: numberLiteral must have numeric value", node_id)

    elif kind == OperandKind.STRING_LITERAL:
        if not isinstance(value, str):
            diagnostics.error(ErrorCategory.SCHEMA, f"{where}: stringLiteral must have string value", node_id)

    elif kind == OperandKind.BOOL_LITERAL:
        if not isinstance(value, bool):
            diagnostics.error(ErrorCategory.SCHEMA, f"{where}: boolLiteral must have boolean value", node_id)

    elif kind == OperandKind.IDENTIFIER:
        name = operand.get("name")
        if not name or not isinstance(name, str):
            diagnostics.error(ErrorCategory.SCHEMA, f"{where}: identifier must have name", node_id)
        elif name not in ctx.catalog.identifiers:
            diagnostics.warn(
                ErrorCategory.SEMANTIC,
                f"{where}: identifier '{name}' may not be recognized",
                node_id,
            )

    elif kind == OperandKind.FUNC_CALL:
        _validate_func_call(operand, ctx, node_id, side, depth, diagnostics)

    if operand.get("offset") is not None:
        _validate_offset(operand["offset"], ctx, node_id, diagnostics)

    return diagnostics


def iter_func_calls(operand: Any, max_depth: int) -> Iterator[Tuple[dict, int]]:
    """
    PURPOSE: Yield every funcCall operand in a subtree with its depth.

    Walks iteratively and stops descending past max_depth, so it is safe on
    graphs the validator has rejected for excessive nesting.
    """
    stack = [(operand, 0)]
    while stack:
        current, depth = stack.pop()
        if depth > max_depth or not isinstance(current, dict):
            continue
        if current.get("kind") != OperandKind.FUNC_CALL:
            continue
        yield current, depth
        args = current.get("args")
        if isinstance(args, list):
            stack.extend((arg, depth + 1) for arg in reversed(args))
