"""
Strategy-related Pydantic schemas for the strategy graph API.

Handles validation and serialization of interpretation requests, graph
edits, validation reports and persisted strategy records. Wire field names
are camelCase (aliases); Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stratgraph.config.constants import TIMEFRAMES
from stratgraph.utils.validators import normalize_symbol, validate_symbol, validate_timeframe


def _check_symbol(v: str) -> str:
    if not validate_symbol(v):
        raise ValueError(f"invalid symbol '{v}'")
    return normalize_symbol(v)


def _check_timeframe(v: str) -> str:
    if not validate_timeframe(v):
        raise ValueError(f"Invalid timeframe. Supported: {', '.join(TIMEFRAMES)}")
    return v


class InterpretRequest(BaseModel):
    """
    Request to turn a plain-language strategy into a graph.

    Attributes:
        user_query: The strategy description, e.g. "buy when RSI < 30"
        symbol: Ticker the strategy trades
        timeframe: Bar timeframe (1M, 5M, 15M, 1H, 4H, 1D, 1W)
    """

    model_config = ConfigDict(populate_by_name=True)

    user_query: str = Field(alias="userQuery", min_length=1, max_length=4000)
    symbol: str
    timeframe: str

    @field_validator("symbol")
    @classmethod
    def validate_symbol_field(cls, v: str) -> str:
        """Validate and upper-case the ticker."""
        return _check_symbol(v)

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe_field(cls, v: str) -> str:
        """Validate the timeframe is supported."""
        return _check_timeframe(v)


class ValidateRequest(BaseModel):
    """
    Request to check a client-supplied graph without persisting it.

    Attributes:
        graph: Raw graph JSON (symbol, entryNode, nodes)
        timeframe: Optional timeframe for the financial checks
        repair: Run the auto-repair pass before validating
        symbol: Default symbol used by the repair pass
    """

    model_config = ConfigDict(populate_by_name=True)

    graph: Dict[str, Any]
    timeframe: Optional[str] = None
    repair: bool = True
    symbol: Optional[str] = None

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe_field(cls, v: Optional[str]) -> Optional[str]:
        """Validate the timeframe when one is given."""
        return _check_timeframe(v) if v is not None else v


class ValidationReport(BaseModel):
    """Validator output: {isValid, errors, warnings}, plus the checked graph."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    repair_notes: List[str] = Field(default_factory=list, alias="repairNotes")
    graph: Optional[Dict[str, Any]] = None


class StrategyGraphUpdate(BaseModel):
    """
    A user edit of a persisted graph. The symbol and timeframe stay as stored.

    Attributes:
        entry_node: New entry node id
        nodes: Replacement node list
        suggested_edits: Replacement suggestion list (omitted keeps the stored one)
    """

    model_config = ConfigDict(populate_by_name=True)

    entry_node: str = Field(alias="entryNode")
    nodes: List[Any]
    suggested_edits: Optional[List[str]] = Field(default=None, alias="suggestedEdits")


class GraphBody(BaseModel):
    """The graph part of a persisted strategy."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    entry_node: str = Field(alias="entryNode")
    nodes: List[Any]


class StrategyResponse(BaseModel):
    """
    Complete persisted strategy.

    Attributes:
        id: Unique strategy identifier (UUID string)
        symbol: Ticker the strategy trades
        timeframe: Bar timeframe
        description: Short description
        user_query: The original plain-language request
        is_valid: Result of the last validation
        validation_errors: Errors from the last validation
        warnings: Repair notes and validator warnings
        suggested_edits: LLM improvement suggestions
        llm_model: Model that produced the graph
        llm_prompt_version: Prompt contract version used
        graph: {symbol, entryNode, nodes}
        created_at: Record creation timestamp
        updated_at: Record last update timestamp
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    symbol: str
    timeframe: str
    description: Optional[str] = None
    user_query: Optional[str] = Field(default=None, alias="userQuery")
    is_valid: bool = Field(alias="isValid")
    validation_errors: List[str] = Field(default_factory=list, alias="validationErrors")
    warnings: List[str] = Field(default_factory=list)
    suggested_edits: List[str] = Field(default_factory=list, alias="suggestedEdits")
    llm_model: Optional[str] = Field(default=None, alias="llmModel")
    llm_prompt_version: Optional[str] = Field(default=None, alias="llmPromptVersion")
    graph: GraphBody
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_record(cls, record: Any) -> "StrategyResponse":
        """Build the response from a StrategyGraphRecord row."""
        return cls(
            id=record.id,
            symbol=record.symbol,
            timeframe=record.timeframe,
            description=record.description,
            user_query=record.user_query,
            is_valid=record.is_valid,
            validation_errors=record.validation_errors or [],
            warnings=record.warnings or [],
            suggested_edits=record.suggested_edits or [],
            llm_model=record.llm_model,
            llm_prompt_version=record.llm_prompt_version,
            graph=GraphBody(symbol=record.symbol, entry_node=record.entry_node, nodes=record.nodes or []),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class StrategySummary(BaseModel):
    """One row of the strategy list."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    symbol: str
    timeframe: str
    description: Optional[str] = None
    is_valid: bool = Field(alias="isValid")
    created_at: datetime = Field(alias="createdAt")


class BacktestRequest(BaseModel):
    """
    Optional date window for a backtest run.

    Attributes:
        start_date: First bar date, YYYY-MM-DD
        end_date: Last bar date, YYYY-MM-DD
    """

    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[str] = Field(default=None, alias="startDate", pattern=r"^\d{4}-\d{2}-\d{2}$")
    end_date: Optional[str] = Field(default=None, alias="endDate", pattern=r"^\d{4}-\d{2}-\d{2}$")


class BacktestResponse(BaseModel):
    """Artifacts produced by the external backtester."""

    model_config = ConfigDict(populate_by_name=True)

    strategy_id: str = Field(alias="strategyId")
    symbol: str
    timeframe: str
    metrics: Dict[str, float] = Field(default_factory=dict)
    trades: List[Dict[str, Any]] = Field(default_factory=list)
    indicators: List[Dict[str, Any]] = Field(default_factory=list)
