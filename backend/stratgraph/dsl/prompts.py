"""
PURPOSE: Prompt templates for turning a plain-language strategy into a graph.

The system prompt is rendered from the catalog, so the model only ever sees
the functions, actions, operators and offset units the validator accepts.

CALLED BY: strategy_builder/interpreter.py
"""

import json
from typing import Any, List

from stratgraph.dsl.catalog import ArgSpec, Catalog
from stratgraph.utils.logger import get_logger

logger = get_logger("dsl.prompts")

# Bumped whenever the prompt contract changes; persisted with each strategy
PROMPT_VERSION = "v2"

SYSTEM_PROMPT_HEADER = """You are an expert algorithmic trading strategy interpreter. Your job is to convert natural language trading strategies into a structured graph representation.

## CRITICAL CONSTRAINTS:
1. You MUST ONLY use functions and actions from the DSL SPECIFICATION below
2. Do NOT invent or use any function/action not listed in the spec
3. Each condition node must contain EXACTLY ONE comparison (left op right)
4. Do NOT use AND/OR inside expr. To express "A AND B", create two condition nodes and connect them with nextIfTrue
5. Every path in the graph MUST terminate in an action node
6. Return ONLY valid JSON, no markdown code fences, no explanation text
7. POSITION CONDITIONS: "only if we don't already have a position" is ALWAYS a binary comparison on position_size(), never an incomplete funcCall
"""

OUTPUT_FORMAT = """## OUTPUT FORMAT:

### Top-level response:
{
  "symbol": "AAPL",
  "entryNode": "cond1",
  "nodes": [ ... ],
  "warnings": [ ... ],
  "suggestedEdits": [ ... ]
}

### Condition node:
{
  "id": "cond1",
  "type": "condition",
  "expr": {
    "kind": "binary",
    "op": "<",
    "left": {
      "kind": "funcCall",
      "name": "rsi",
      "args": [
        { "kind": "identifier", "name": "close" },
        { "kind": "numberLiteral", "value": 14 }
      ]
    },
    "right": { "kind": "numberLiteral", "value": 30 }
  },
  "nextIfTrue": "actBuy",
  "nextIfFalse": "actNoTrade"
}

### Action node:
{
  "id": "actBuy",
  "type": "action",
  "actionType": "ENTER_LONG",
  "symbol": "AAPL",
  "qty": 10,
  "qtyType": "PERCENT_EQUITY",
  "params": {},
  "next": null
}

### Operand kinds:
- numberLiteral: { "kind": "numberLiteral", "value": 30 }
- stringLiteral: { "kind": "stringLiteral", "value": "09:30" }
- boolLiteral:   { "kind": "boolLiteral", "value": true }
- identifier:    { "kind": "identifier", "name": "close" }
- funcCall:      { "kind": "funcCall", "name": "rsi", "args": [...], "offset": { "unit": "bars", "value": 1 } }
"""

RULES = """## EXPRESSING AND/OR:
"RSI < 30 AND price > EMA(20)":
1. cond1: RSI < 30 -> nextIfTrue: "cond2", nextIfFalse: "actNoTrade"
2. cond2: price > EMA(20) -> nextIfTrue: "actBuy", nextIfFalse: "actNoTrade"

"RSI > 70 OR price < EMA(20)":
1. cond1: RSI > 70 -> nextIfTrue: "actSell", nextIfFalse: "cond2"
2. cond2: price < EMA(20) -> nextIfTrue: "actSell", nextIfFalse: "actNoTrade"

## POSITION CONDITIONS:
- No open position: { "kind": "binary", "op": "==", "left": { "kind": "funcCall", "name": "position_size", "args": [{ "kind": "stringLiteral", "value": "AAPL" }] }, "right": { "kind": "numberLiteral", "value": 0 } }
- Has a position: same comparison with "op": ">"

## QUANTITIES (qty MUST ALWAYS BE A NUMBER):
- ENTER_LONG/ENTER_SHORT: qty with qtyType "PERCENT_EQUITY" or "ABSOLUTE"
- EXIT_LONG/EXIT_SHORT: qty is a percentage (1-100) of the open position with qtyType "PERCENT_POSITION"; 100 for "exit all" (the default), 50 for "exit half"
- NEVER use strings such as "ALL" or "HALF" for qty

## VALIDATION RULES:
1. All node ids must be unique
2. nextIfTrue, nextIfFalse and next must reference existing node ids or be null
3. entryNode must exist in nodes
4. expr.kind must be "binary" for condition nodes, with "op", "left" and "right"
5. Function names must come from the function catalog and actionType from the action list

## WARNINGS TO INCLUDE:
- Missing stop-loss protection
- No exit conditions defined
- Unusual indicator parameters
- Time-based conditions on a daily timeframe may not work as expected
"""

USER_PROMPT_TEMPLATE = """User Strategy Query: "{query}"

Context:
- Symbol: {symbol}
- Timeframe: {timeframe}
- Goal: Convert this natural language strategy into a structured graph of condition and action nodes

Return a valid JSON graph following the format in the system prompt."""


def _format_arg(arg: ArgSpec, with_bounds: bool = True) -> str:
    text = f"{arg.name}: {arg.type}"
    if arg.allowed_values:
        text += f" [{'|'.join(str(v) for v in arg.allowed_values)}]"
    if with_bounds and (arg.min is not None or arg.max is not None):
        low = arg.min if arg.min is not None else 0
        high = arg.max if arg.max is not None else "inf"
        text += f" ({low}-{high})"
    if arg.has_default:
        text += f" default={json.dumps(arg.default)}"
    return text


def _function_docs(catalog: Catalog) -> str:
    lines: List[str] = []
    for category, functions in catalog.functions_by_category().items():
        lines.append(f"\n### {category.upper()} FUNCTIONS:")
        for fn in functions:
            args = ", ".join(_format_arg(arg) for arg in fn.args)
            returns = fn.return_type or "any"
            lines.append(f"- {fn.name}({args}) -> {returns}")
            if fn.description:
                lines.append(f"  {fn.description}")
    return "\n".join(lines)


def _action_docs(catalog: Catalog) -> str:
    lines = ["\n### SUPPORTED ACTIONS:"]
    for action in catalog.actions:
        args = ", ".join(_format_arg(arg, with_bounds=False) for arg in action.args)
        lines.append(f"- {action.name}({args})")
        if action.description:
            lines.append(f"  {action.description}")
    return "\n".join(lines)


def _operator_docs(catalog: Catalog) -> str:
    return (
        "### OPERATORS:\n"
        f"- Arithmetic: {', '.join(catalog.arithmetic_operators())}\n"
        f"- Comparison: {', '.join(catalog.comparison_operators())}\n\n"
        "### OFFSETS (time-series lookback):\n"
        f"- Units: {', '.join(catalog.offset_units())}\n"
        '- Attach to a funcCall as "offset": {"unit": "bars", "value": N}\n\n'
        "### IDENTIFIERS:\n"
        f"- {', '.join(catalog.identifiers)}\n\n"
        "### QUANTITY TYPES:\n"
        f"- {', '.join(catalog.quantity_types)}"
    )


def render_system_prompt(catalog: Catalog) -> str:
    """
    PURPOSE: Render the full system prompt for the graph-producing LLM call.

    Args:
        catalog: DSL catalog the generated graph will be validated against.

    Returns:
        str: Prompt text listing every function, action and operator.
    """
    sections = [
        SYSTEM_PROMPT_HEADER,
        f"## DSL SPECIFICATION v{catalog.version}:",
        catalog.description,
        f"### DATA TYPES:\n{', '.join(catalog.types)}",
        _operator_docs(catalog),
        _function_docs(catalog),
        _action_docs(catalog),
        OUTPUT_FORMAT,
        RULES,
    ]
    prompt = "\n\n".join(section for section in sections if section)
    logger.debug("system_prompt_rendered", version=PROMPT_VERSION, length=len(prompt))
    return prompt


def render_user_prompt(query: str, symbol: str, timeframe: Any) -> str:
    """Render the per-request prompt carrying the user's description."""
    return USER_PROMPT_TEMPLATE.format(query=query.strip(), symbol=symbol, timeframe=timeframe)
