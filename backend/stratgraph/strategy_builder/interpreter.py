"""
PURPOSE: Natural language to strategy graph interpretation pipeline.

prompt (rendered from the catalog) -> LLM -> JSON extraction -> auto-repair
-> validation. The graph is returned whether or not it validates: callers
persist it either way so the user can fix it in the editor, and only a
valid graph is ever handed to the code generator.

Examples:
    "Buy AAPL when RSI(14) drops below 30, sell when it goes above 70"
    "Enter long when EMA20 crosses above EMA50, stop at 2% below entry"

CALLED BY:
    - api/routes_strategies.py (POST /strategies/interpret)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from stratgraph.dsl.catalog import Catalog, get_catalog
from stratgraph.dsl.prompts import PROMPT_VERSION, render_system_prompt, render_user_prompt
from stratgraph.llm.client import LLMClient
from stratgraph.repair.json_repair import extract_json_object
from stratgraph.repair.normalizer import repair_in_place
from stratgraph.utils.logger import get_logger
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.result import ValidationResult
from stratgraph.validation.validator import StrategyValidator

logger = get_logger("strategy_builder.interpreter")


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


@dataclass
class InterpretationResult:
    """
    Outcome of one interpretation request.

    Attributes:
        graph: Repaired graph dict (symbol, entryNode, nodes, warnings, suggestedEdits)
        validation: Validator output for the repaired graph
        warnings: Repair notes and LLM warnings followed by validator warnings
        suggested_edits: LLM improvement suggestions
        repair_notes: Rewrites applied by the repair pass
        model: LLM model that produced the graph
        prompt_version: Prompt contract version used
    """

    user_query: str
    symbol: str
    timeframe: str
    graph: Dict[str, Any]
    validation: ValidationResult
    warnings: List[str] = field(default_factory=list)
    suggested_edits: List[str] = field(default_factory=list)
    repair_notes: List[str] = field(default_factory=list)
    model: Optional[str] = None
    prompt_version: str = PROMPT_VERSION

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid


class StrategyInterpreter:
    """
    PURPOSE: Turns plain-language strategy descriptions into validated graphs.

    Owns no state beyond its collaborators; every call builds its own graph.

    CALLED BY: api/routes_strategies.py
    """

    def __init__(
        self,
        llm_client: LLMClient,
        catalog: Optional[Catalog] = None,
        validator: Optional[StrategyValidator] = None,
    ) -> None:
        self._llm = llm_client
        self._catalog = catalog or get_catalog()
        self._validator = validator or StrategyValidator(ValidationContext.from_settings(self._catalog))
        self._system_prompt = render_system_prompt(self._catalog)

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def interpret(self, user_query: str, symbol: str, timeframe: str) -> InterpretationResult:
        """
        Interpret a strategy description into a repaired, validated graph.

        Args:
            user_query: e.g. "Buy when RSI < 30"
            symbol: Ticker the user asked for; fills in missing symbols
            timeframe: Bar timeframe, used by the financial checks

        Returns:
            InterpretationResult for the repaired graph.

        Raises:
            LLMResponseError: When the LLM call fails or returns no JSON object.
        """
        symbol = symbol.strip().upper()
        logger.info("interpret_start", query_length=len(user_query), symbol=symbol, timeframe=timeframe)

        response = await self._llm.complete(
            self._system_prompt,
            render_user_prompt(user_query, symbol, timeframe),
        )
        graph = extract_json_object(response)

        # LLM-supplied metadata is kept only when it is a list of strings
        graph["warnings"] = _string_list(graph.get("warnings"))
        graph["suggestedEdits"] = _string_list(graph.get("suggestedEdits"))

        repair_notes = repair_in_place(graph, default_symbol=symbol)
        validation = self._validator.validate(graph, timeframe)

        result = InterpretationResult(
            user_query=user_query,
            symbol=graph["symbol"] if isinstance(graph.get("symbol"), str) else symbol,
            timeframe=timeframe,
            graph=graph,
            validation=validation,
            warnings=graph["warnings"] + validation.warnings,
            suggested_edits=graph["suggestedEdits"],
            repair_notes=repair_notes,
            model=self._llm.model,
        )

        logger.info(
            "interpret_complete",
            symbol=result.symbol,
            is_valid=result.is_valid,
            node_count=len(graph["nodes"]) if isinstance(graph.get("nodes"), list) else 0,
            repairs=len(repair_notes),
            errors=len(validation.errors),
        )
        return result
