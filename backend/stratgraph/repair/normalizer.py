"""
PURPOSE: Auto-repair of known-bad LLM output patterns before validation.

Rewrites the handful of shapes the model is known to produce wrongly into
the canonical wire format, recording one human-readable note per rewrite
in graph["warnings"]:

    - condition expr {kind: "funcCall"} without name/args -> 1 == 1
    - unary NOT (!, NOT, not) -> <operand> == 0
    - qty_type -> qtyType
    - missing symbols (top level and per action)
    - missing ENTER qty -> 10 PERCENT_EQUITY
    - EXIT qty strings ("ALL", "HALF", "25%") -> numeric PERCENT_POSITION

Every rule only fires when the graph differs from its canonical form, so a
repaired graph is a fixed point: repairing it again changes nothing and
adds no notes.

CALLED BY:
    - strategy_builder/interpreter.py (repair_in_place on fresh LLM output)
    - api/routes_strategies.py (normalize_graph for POST /strategies/validate)
"""

import copy
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from stratgraph.config.constants import (
    BINARY_EXPR_KIND,
    DEFAULT_ENTRY_QTY,
    DEFAULT_EXIT_QTY,
    ENTRY_ACTIONS,
    EXIT_ACTIONS,
    HALF_EXIT_QTY,
    NEGATION_OPERATORS,
    SYMBOL_EXEMPT_ACTIONS,
    NodeType,
    OperandKind,
    QtyType,
)
from stratgraph.utils.logger import get_logger

logger = get_logger("repair.normalizer")


@dataclass
class RepairResult:
    """Repaired graph plus the notes recorded while repairing it."""

    graph: Any
    notes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.notes)


def pass_through_expr() -> dict:
    """Canonical always-true comparison: 1 == 1."""
    return {
        "kind": BINARY_EXPR_KIND,
        "op": "==",
        "left": {"kind": OperandKind.NUMBER_LITERAL.value, "value": 1},
        "right": {"kind": OperandKind.NUMBER_LITERAL.value, "value": 1},
    }


def _clean_number(value: float) -> Union[int, float]:
    return int(value) if float(value).is_integer() else value


def parse_exit_qty(raw: str) -> Union[int, float]:
    """
    PURPOSE: Convert a string exit quantity into a percentage of the position.

    "ALL"/"100%" -> 100, "HALF"/"50%" -> 50, "<n>%" -> n, anything else -> 100.
    An unparsable or non-positive percentage falls back to a full exit.
    """
    text = raw.strip().upper()
    if text in ("ALL", "100%"):
        return DEFAULT_EXIT_QTY
    if text in ("HALF", "50%"):
        return HALF_EXIT_QTY
    if text.endswith("%"):
        try:
            value = float(text[:-1].strip())
        except ValueError:
            return DEFAULT_EXIT_QTY
        if not math.isfinite(value) or value <= 0:
            return DEFAULT_EXIT_QTY
        return _clean_number(value)
    return DEFAULT_EXIT_QTY


class _Repairer:
    """Applies the rewrite rules to one graph, collecting notes."""

    def __init__(self, graph: dict, default_symbol: Optional[str]) -> None:
        self.graph = graph
        self.default_symbol = default_symbol
        self.notes: List[str] = []

    def note(self, message: str, rule: str, node_id: Any = None) -> None:
        self.notes.append(message)
        logger.info("graph_repaired", rule=rule, node_id=node_id, note=message)

    def run(self) -> None:
        self._repair_symbol()
        nodes = self.graph.get("nodes")
        if not isinstance(nodes, list):
            return
        for node in nodes:
            if not isinstance(node, dict):
                continue
            if node.get("type") == NodeType.CONDITION:
                self._repair_condition(node)
            elif node.get("type") == NodeType.ACTION:
                self._repair_action(node)

    # ── graph level ───────────────────────────────────────────

    def _graph_symbol(self) -> Optional[str]:
        symbol = self.graph.get("symbol")
        if isinstance(symbol, str) and symbol.strip():
            return symbol.strip().upper()
        if self.default_symbol:
            return self.default_symbol.strip().upper()
        return None

    def _repair_symbol(self) -> None:
        symbol = self.graph.get("symbol")
        if (not isinstance(symbol, str) or not symbol.strip()) and self.default_symbol:
            self.graph["symbol"] = self.default_symbol.strip().upper()
            self.note(f'Auto-fixed: Set missing strategy symbol to "{self.graph["symbol"]}"', "graph_symbol")

    # ── condition nodes ───────────────────────────────────────

    def _repair_condition(self, node: dict) -> None:
        expr = node.get("expr")
        node_id = node.get("id")
        if not isinstance(expr, dict):
            return

        if expr.get("kind") == OperandKind.FUNC_CALL and (
            not expr.get("name") or not isinstance(expr.get("args"), list)
        ):
            node["expr"] = pass_through_expr()
            self.note(
                f"Auto-fixed: Converted incomplete funcCall condition in node {node_id} to pass-through "
                "(always true). Consider specifying the condition explicitly.",
                "incomplete_func_call",
                node_id,
            )
            return

        op = expr.get("op")
        if isinstance(op, str) and op in NEGATION_OPERATORS:
            operand = expr.get("right") or expr.get("left")
            if isinstance(operand, dict):
                node["expr"] = {
                    "kind": BINARY_EXPR_KIND,
                    "op": "==",
                    "left": operand,
                    "right": {"kind": OperandKind.NUMBER_LITERAL.value, "value": 0},
                }
                self.note(
                    f"Auto-fixed: Converted NOT operator in node {node_id} to == 0 comparison",
                    "negation",
                    node_id,
                )
            else:
                node["expr"] = pass_through_expr()
                self.note(
                    f"Auto-fixed: Converted NOT operator without operand in node {node_id} to pass-through "
                    "(always true)",
                    "negation",
                    node_id,
                )

    # ── action nodes ──────────────────────────────────────────

    def _repair_action(self, node: dict) -> None:
        node_id = node.get("id")
        action_type = node.get("actionType")

        if "qty_type" in node:
            legacy = node.pop("qty_type")
            if node.get("qtyType") is None:
                node["qtyType"] = legacy
            self.note(f"Auto-fixed: Renamed qty_type to qtyType in node {node_id}", "qty_type_key", node_id)

        if not isinstance(action_type, str):
            return

        symbol = self._graph_symbol()
        if not node.get("symbol") and action_type not in SYMBOL_EXEMPT_ACTIONS and symbol:
            node["symbol"] = symbol
            self.note(f'Auto-fixed: Added symbol "{symbol}" to {action_type} action', "action_symbol", node_id)

        if action_type in ENTRY_ACTIONS and node.get("qty") is None:
            node["qty"] = DEFAULT_ENTRY_QTY
            # An explicit qtyType (e.g. ABSOLUTE) is kept; only a missing one defaults to equity
            if node.get("qtyType") is None:
                node["qtyType"] = QtyType.PERCENT_EQUITY.value
                message = f"Auto-fixed: Added default qty {DEFAULT_ENTRY_QTY}% equity to {action_type} action"
            else:
                message = f"Auto-fixed: Added default qty {DEFAULT_ENTRY_QTY} ({node['qtyType']}) to {action_type} action"
            self.note(
                message,
                "entry_qty",
                node_id,
            )

        if action_type in EXIT_ACTIONS:
            self._repair_exit_qty(node, action_type)

    def _repair_exit_qty(self, node: dict, action_type: str) -> None:
        node_id = node.get("id")
        qty = node.get("qty")
        if isinstance(qty, str):
            node["qty"] = parse_exit_qty(qty)
            self.note(
                f'Auto-fixed: Converted string qty "{qty.strip().upper()}" to numeric {node["qty"]}%',
                "exit_qty",
                node_id,
            )
        elif qty is None:
            node["qty"] = DEFAULT_EXIT_QTY
            self.note(
                f"Auto-fixed: Added default qty {DEFAULT_EXIT_QTY}% of position to {action_type} action",
                "exit_qty",
                node_id,
            )

        if node.get("qtyType") != QtyType.PERCENT_POSITION:
            node["qtyType"] = QtyType.PERCENT_POSITION.value
            self.note(
                f"Auto-fixed: Set qtyType PERCENT_POSITION on {action_type} action",
                "exit_qty_type",
                node_id,
            )


def repair_in_place(graph: Any, default_symbol: Optional[str] = None) -> List[str]:
    """
    PURPOSE: Repair a graph by mutating it, appending notes to graph["warnings"].

    The caller must own the graph exclusively for the duration of the call.

    Args:
        graph: Raw graph object straight from the LLM.
        default_symbol: Symbol the user asked for; fills in missing symbols.

    Returns:
        list[str]: Notes for the rewrites performed (empty when nothing changed).
    """
    if not isinstance(graph, dict):
        return []

    repairer = _Repairer(graph, default_symbol)
    repairer.run()

    if repairer.notes:
        warnings = graph.get("warnings")
        if not isinstance(warnings, list):
            warnings = []
            graph["warnings"] = warnings
        warnings.extend(repairer.notes)

    return repairer.notes


def normalize_graph(graph: Any, default_symbol: Optional[str] = None) -> RepairResult:
    """
    PURPOSE: Repair a copy of the graph, leaving the input untouched.

    Returns:
        RepairResult: The repaired copy and the notes recorded for it.
    """
    repaired = copy.deepcopy(graph)
    notes = repair_in_place(repaired, default_symbol)
    return RepairResult(graph=repaired, notes=notes)
