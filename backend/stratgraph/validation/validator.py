"""
PURPOSE: Validation orchestrator for strategy graphs.

Composes the structural check, per-node validation, connectivity analysis
and the financial linter into one call that returns
{isValid, errors, warnings}. Validation never mutates the graph and never
raises for a decoded JSON document; repair happens beforehand in
repair/normalizer.py.

CALLED BY:
    - strategy_builder/interpreter.py (after the LLM call and repair pass)
    - services/strategy_service.py (re-validation of user edits)
    - api/routes_strategies.py (POST /strategies/validate)
"""

from collections import Counter
from typing import Any, Optional

from stratgraph.config.constants import TIMEFRAMES
from stratgraph.dsl.catalog import Catalog
from stratgraph.utils.logger import get_logger
from stratgraph.validation.connectivity import analyze_connectivity
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.financial import lint_financials
from stratgraph.validation.nodes import validate_node
from stratgraph.validation.result import Diagnostics, ErrorCategory, ValidationResult

logger = get_logger("validation.validator")


class StrategyValidator:
    """
    PURPOSE: Validate strategy graphs against the DSL catalog.

    Holds only the immutable ValidationContext; each validate() call builds
    its own diagnostics, so one instance can be shared across threads.

    CALLED BY: validate_strategy(), StrategyInterpreter, StrategyService
    """

    def __init__(self, ctx: Optional[ValidationContext] = None) -> None:
        self._ctx = ctx or ValidationContext.from_settings()

    @property
    def context(self) -> ValidationContext:
        return self._ctx

    def validate(self, graph: Any, timeframe: Optional[str] = None) -> ValidationResult:
        """
        PURPOSE: Run every validation pass over one graph.

        Args:
            graph: Decoded graph JSON (symbol, entryNode, nodes).
            timeframe: Bar timeframe, used by the financial linter.

        Returns:
            ValidationResult: All errors and warnings found.
        """
        diagnostics = Diagnostics()

        if not isinstance(graph, dict):
            diagnostics.error(ErrorCategory.STRUCTURAL, "Strategy graph must be a JSON object")
            return self._finish(diagnostics, graph)

        self._validate_structure(graph, diagnostics)
        nodes = graph.get("nodes")
        if not isinstance(nodes, list) or not nodes:
            return self._finish(diagnostics, graph)

        self._validate_nodes(nodes, diagnostics)

        if isinstance(graph.get("entryNode"), str) and graph["entryNode"]:
            diagnostics.extend(analyze_connectivity(graph, self._ctx))

        if timeframe is not None and timeframe not in TIMEFRAMES:
            diagnostics.warn(
                ErrorCategory.FINANCIAL,
                f"Unknown timeframe '{timeframe}'. Supported: {', '.join(TIMEFRAMES)}",
            )
        diagnostics.extend(lint_financials(graph, timeframe, self._ctx))

        return self._finish(diagnostics, graph)

    # ------------------------------------------------------------------ #
    #  Private helpers
    # ------------------------------------------------------------------ #

    def _validate_structure(self, graph: dict, diagnostics: Diagnostics) -> None:
        symbol = graph.get("symbol")
        if not symbol or not isinstance(symbol, str) or not symbol.strip():
            diagnostics.error(ErrorCategory.STRUCTURAL, "Missing or invalid symbol")

        entry = graph.get("entryNode")
        if not entry or not isinstance(entry, str):
            diagnostics.error(ErrorCategory.STRUCTURAL, "Missing or invalid entryNode")

        nodes = graph.get("nodes")
        if not isinstance(nodes, list) or not nodes:
            diagnostics.error(ErrorCategory.STRUCTURAL, "nodes must be a non-empty array")

    def _validate_nodes(self, nodes: list, diagnostics: Diagnostics) -> None:
        ids = [node.get("id") for node in nodes if isinstance(node, dict) and isinstance(node.get("id"), str)]
        counts = Counter(ids)
        for node_id, count in counts.items():
            if count > 1:
                diagnostics.error(ErrorCategory.REFERENCE, f"Duplicate node ID: {node_id}", node_id)

        all_node_ids = frozenset(counts)
        for node in nodes:
            diagnostics.extend(validate_node(node, all_node_ids, self._ctx))

    def _finish(self, diagnostics: Diagnostics, graph: Any) -> ValidationResult:
        result = ValidationResult.from_diagnostics(diagnostics)
        nodes = graph.get("nodes") if isinstance(graph, dict) else None
        logger.debug(
            "graph_validated",
            is_valid=result.is_valid,
            node_count=len(nodes) if isinstance(nodes, list) else 0,
            error_count=len(result.errors),
            warning_count=len(result.warnings),
        )
        return result


def validate_strategy(
    graph: Any,
    timeframe: Optional[str] = None,
    catalog: Optional[Catalog] = None,
) -> ValidationResult:
    """
    PURPOSE: Validate a strategy graph with the configured limits.

    Args:
        graph: Decoded graph JSON.
        timeframe: Bar timeframe, e.g. "1H".
        catalog: Catalog to validate against; defaults to the process catalog.

    Returns:
        ValidationResult: Use .to_dict() for the {isValid, errors, warnings} shape.
    """
    return StrategyValidator(ValidationContext.from_settings(catalog)).validate(graph, timeframe)
