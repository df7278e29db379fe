"""
PURPOSE: Financial sanity linting for strategy graphs.

Advisory only: every finding is a warning and never affects validity.
Checks for unprotected entries, extreme RSI / moving-average periods, and
intraday time filters on daily or weekly timeframes.

CALLED BY: validation/validator.py
"""

from typing import Any, Iterator, Optional, Tuple

from stratgraph.config.constants import (
    DAILY_OR_SLOWER_TIMEFRAMES,
    ENTRY_ACTIONS,
    INTRADAY_FUNCTIONS,
    MA_MAX_PERIOD,
    MA_MIN_PERIOD,
    MOVING_AVERAGE_FUNCTIONS,
    PROTECTIVE_ACTIONS,
    RSI_FUNCTIONS,
    RSI_MAX_PERIOD,
    RSI_MIN_PERIOD,
    NodeType,
)
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.operands import is_number, iter_func_calls
from stratgraph.validation.result import Diagnostics, ErrorCategory

UNPROTECTED_ENTRY_WARNING = (
    "Strategy enters positions but has no explicit exit or stop-loss condition - highly risky"
)


def _dict_nodes(graph: dict) -> Iterator[dict]:
    nodes = graph.get("nodes")
    if isinstance(nodes, list):
        yield from (node for node in nodes if isinstance(node, dict))


def _action_types(graph: dict) -> set:
    return {
        node.get("actionType")
        for node in _dict_nodes(graph)
        if node.get("type") == NodeType.ACTION and isinstance(node.get("actionType"), str)
    }


def _condition_calls(graph: dict, max_depth: int) -> Iterator[Tuple[str, dict]]:
    """Yield (node_id, funcCall) for every call anywhere in a condition's operands."""
    for node in _dict_nodes(graph):
        expr = node.get("expr")
        if node.get("type") != NodeType.CONDITION or not isinstance(expr, dict):
            continue
        for side in ("left", "right"):
            for call, _ in iter_func_calls(expr.get(side), max_depth):
                yield node.get("id"), call


def _period_arg(call: dict) -> Optional[float]:
    args = call.get("args")
    if not isinstance(args, list) or len(args) < 2:
        return None
    period = args[1]
    if isinstance(period, dict) and period.get("kind") == "numberLiteral" and is_number(period.get("value")):
        return period["value"]
    return None


def lint_financials(graph: dict, timeframe: Optional[str], ctx: ValidationContext) -> Diagnostics:
    """
    PURPOSE: Run the financial sanity checks over the whole graph.

    Args:
        graph: Raw graph object.
        timeframe: Bar timeframe the strategy will run on, e.g. "1H" or "1D".
        ctx: Validation context (nesting limit for the operand walk).

    Returns:
        Diagnostics: Warnings only.
    """
    diagnostics = Diagnostics()

    actions = _action_types(graph)
    if actions & ENTRY_ACTIONS and not actions & PROTECTIVE_ACTIONS:
        diagnostics.warn(ErrorCategory.FINANCIAL, UNPROTECTED_ENTRY_WARNING)

    uses_intraday = False
    for node_id, call in _condition_calls(graph, ctx.max_depth):
        name = call.get("name")
        if not isinstance(name, str):
            continue
        if name in INTRADAY_FUNCTIONS:
            uses_intraday = True

        period = _period_arg(call)
        if period is None:
            continue

        if name in RSI_FUNCTIONS:
            if period < RSI_MIN_PERIOD:
                diagnostics.warn(ErrorCategory.FINANCIAL, f"RSI period {period} in node {node_id} is unusually short", node_id)
            elif period > RSI_MAX_PERIOD:
                diagnostics.warn(ErrorCategory.FINANCIAL, f"RSI period {period} in node {node_id} is unusually long", node_id)

        elif name in MOVING_AVERAGE_FUNCTIONS:
            if period < MA_MIN_PERIOD:
                diagnostics.warn(
                    ErrorCategory.FINANCIAL,
                    f"Moving average period {period} in node {node_id} is too short",
                    node_id,
                )
            elif period > MA_MAX_PERIOD:
                diagnostics.warn(
                    ErrorCategory.FINANCIAL,
                    f"Moving average period {period} in node {node_id} is unusually long",
                    node_id,
                )

    if uses_intraday and isinstance(timeframe, str) and timeframe in DAILY_OR_SLOWER_TIMEFRAMES:
        diagnostics.warn(
            ErrorCategory.FINANCIAL,
            f"Intraday time filters on {timeframe} timeframe may not work as intended",
        )

    return diagnostics
