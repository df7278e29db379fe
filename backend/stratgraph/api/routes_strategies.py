"""
PURPOSE: Strategy graph API routes.

Interpret plain-language strategies into graphs, validate client-supplied
graphs, and manage persisted strategies (list, get, edit, delete).
Domain errors (StratGraphError subclasses) propagate to the app-level
handler in main.py, which maps them to 404 / 400 / 502 / 500.

CALLED BY:
    - Frontend strategy editor
    - External integrations via API
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from stratgraph.config.settings import settings
from stratgraph.core.exceptions import StratGraphError
from stratgraph.core.rate_limit import limiter, LLM_LIMIT, READ_LIMIT, WRITE_LIMIT
from stratgraph.db.engine import get_db
from stratgraph.dsl.catalog import Catalog, get_catalog
from stratgraph.llm.client import LLMClient
from stratgraph.repair.normalizer import normalize_graph
from stratgraph.schemas.strategy import (
    InterpretRequest,
    StrategyGraphUpdate,
    StrategyResponse,
    StrategySummary,
    ValidateRequest,
    ValidationReport,
)
from stratgraph.services.strategy_service import StrategyService
from stratgraph.strategy_builder.interpreter import StrategyInterpreter
from stratgraph.utils.logger import bind_strategy_context, get_logger
from stratgraph.validation.context import ValidationContext
from stratgraph.validation.validator import StrategyValidator


logger = get_logger("api.strategies")
router = APIRouter(prefix="/strategies", tags=["strategies"])


# ════════════════════════════════════════════════════════════════
# Dependencies
# ════════════════════════════════════════════════════════════════


@lru_cache(maxsize=1)
def _shared_llm_client() -> LLMClient:
    return LLMClient.from_settings()


def get_interpreter(catalog: Catalog = Depends(get_catalog)) -> StrategyInterpreter:
    """Resolve a StrategyInterpreter, or 503 when no LLM is configured."""
    if not settings.llm_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LLM is not configured. Set LLM_API_KEY (and optionally LLM_PROVIDER / LLM_MODEL).",
        )
    return StrategyInterpreter(_shared_llm_client(), catalog=catalog)


def get_validator(catalog: Catalog = Depends(get_catalog)) -> StrategyValidator:
    return StrategyValidator(ValidationContext.from_settings(catalog))


def _raise_route_error(action: str, error: Exception) -> None:
    """Raise a consistent 500 response for unexpected route failures."""
    logger.error(
        "strategy_route_failed",
        action=action,
        error=str(error),
        exception_type=type(error).__name__,
    )
    raise HTTPException(status_code=500, detail=f"Failed to {action}")


# ════════════════════════════════════════════════════════════════
# POST /api/strategies/interpret
# ════════════════════════════════════════════════════════════════


@router.post("/interpret", response_model=StrategyResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(LLM_LIMIT)
async def interpret_strategy(
    request: Request,
    body: InterpretRequest,
    interpreter: StrategyInterpreter = Depends(get_interpreter),
    db: AsyncSession = Depends(get_db),
) -> StrategyResponse:
    """
    PURPOSE: Turn a plain-language strategy into a repaired, validated graph and store it.

    The strategy is stored even when it does not validate, so it can be
    fixed in the editor; `isValid` and `validationErrors` say which.

    Args:
        body.user_query: e.g. "Buy when RSI(14) < 30, sell when RSI > 70"
        body.symbol: Ticker, e.g. AAPL
        body.timeframe: One of 1M, 5M, 15M, 1H, 4H, 1D, 1W
    """
    logger.info("strategy_interpret_request", symbol=body.symbol, timeframe=body.timeframe)
    try:
        result = await interpreter.interpret(body.user_query, body.symbol, body.timeframe)
        return await StrategyService.create_from_interpretation(db, result)
    except (HTTPException, StratGraphError):
        raise
    except Exception as e:
        _raise_route_error("interpret strategy", e)


# ════════════════════════════════════════════════════════════════
# GET /api/strategies/catalog
# ════════════════════════════════════════════════════════════════


@router.get("/catalog")
@limiter.limit(READ_LIMIT)
async def get_strategy_catalog(
    request: Request,
    catalog: Catalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """
    PURPOSE: Describe the functions, actions, operators and offset units a graph may use.
    """
    return catalog.summary()


# ════════════════════════════════════════════════════════════════
# POST /api/strategies/validate
# ════════════════════════════════════════════════════════════════


@router.post("/validate", response_model=ValidationReport)
@limiter.limit(WRITE_LIMIT)
async def validate_graph(
    request: Request,
    body: ValidateRequest,
    validator: StrategyValidator = Depends(get_validator),
) -> ValidationReport:
    """
    PURPOSE: Validate a client-supplied graph without storing it.

    With `repair` (the default) the graph first goes through the auto-repair
    pass; the response carries the repaired graph and the repair notes.
    """
    graph = body.graph
    notes: List[str] = []
    if body.repair:
        repaired = normalize_graph(graph, default_symbol=body.symbol)
        graph, notes = repaired.graph, repaired.notes

    result = validator.validate(graph, body.timeframe)
    logger.info("strategy_validate_request", is_valid=result.is_valid, repairs=len(notes))

    return ValidationReport(
        is_valid=result.is_valid,
        errors=result.errors,
        warnings=notes + result.warnings,
        repair_notes=notes,
        graph=graph,
    )


# ════════════════════════════════════════════════════════════════
# GET /api/strategies
# ════════════════════════════════════════════════════════════════


@router.get("", response_model=List[StrategySummary])
@limiter.limit(READ_LIMIT)
async def list_strategies(
    request: Request,
    symbol: Optional[str] = Query(default=None, max_length=20),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[StrategySummary]:
    """
    PURPOSE: List stored strategies, newest first.
    """
    try:
        return await StrategyService.list(db, symbol=symbol, limit=limit, offset=offset)
    except Exception as e:
        _raise_route_error("list strategies", e)


# ════════════════════════════════════════════════════════════════
# GET / PUT / DELETE /api/strategies/{strategy_id}
# ════════════════════════════════════════════════════════════════


@router.get("/{strategy_id}", response_model=StrategyResponse)
@limiter.limit(READ_LIMIT)
async def get_strategy(
    request: Request,
    strategy_id: str,
    db: AsyncSession = Depends(get_db),
) -> StrategyResponse:
    """
    PURPOSE: Retrieve one stored strategy with its graph.
    """
    return await StrategyService.get(db, strategy_id)


@router.put("/{strategy_id}", response_model=StrategyResponse)
@limiter.limit(WRITE_LIMIT)
async def update_strategy(
    request: Request,
    strategy_id: str,
    body: StrategyGraphUpdate,
    validator: StrategyValidator = Depends(get_validator),
    db: AsyncSession = Depends(get_db),
) -> StrategyResponse:
    """
    PURPOSE: Store an edited graph after re-validating it.

    The edit is stored whether or not it validates; `isValid` reports the result.
    """
    with bind_strategy_context(strategy_id=strategy_id):
        logger.info("strategy_update_request", node_count=len(body.nodes))
        return await StrategyService.update_graph(db, strategy_id, body, validator=validator)


@router.delete("/{strategy_id}")
@limiter.limit(WRITE_LIMIT)
async def delete_strategy(
    request: Request,
    strategy_id: str,
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """
    PURPOSE: Delete a stored strategy.
    """
    await StrategyService.delete(db, strategy_id)
    return {"status": "deleted", "strategy_id": strategy_id}
