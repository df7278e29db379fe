"""
Pydantic v2 schemas for the strategy graph API.

This module exports the typed graph model (wire format) and the
request/response schemas used by the API routes.
"""

from .graph import (
    ActionNode,
    BinaryExpr,
    ConditionNode,
    FuncCall,
    StrategyGraph,
    parse_strategy_graph,
)
from .strategy import (
    BacktestRequest,
    BacktestResponse,
    InterpretRequest,
    StrategyGraphUpdate,
    StrategyResponse,
    StrategySummary,
    ValidateRequest,
    ValidationReport,
)

__all__ = [
    # Graph wire format
    "ActionNode",
    "BinaryExpr",
    "ConditionNode",
    "FuncCall",
    "StrategyGraph",
    "parse_strategy_graph",
    # Strategy schemas
    "InterpretRequest",
    "ValidateRequest",
    "ValidationReport",
    "StrategyGraphUpdate",
    "StrategyResponse",
    "StrategySummary",
    # Backtest schemas
    "BacktestRequest",
    "BacktestResponse",
]
