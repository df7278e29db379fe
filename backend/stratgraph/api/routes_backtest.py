"""
PURPOSE: Backtest API routes.

Hands a stored, valid strategy graph to the external code generator and
backtester and returns the parsed artifacts.

CALLED BY:
    - Frontend analytics page
"""

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from stratgraph.backtest.runner import BacktestRunner
from stratgraph.core.exceptions import InvalidStrategyError
from stratgraph.core.rate_limit import limiter, READ_LIMIT, WRITE_LIMIT
from stratgraph.db.engine import get_db
from stratgraph.schemas.strategy import BacktestRequest, BacktestResponse
from stratgraph.services.strategy_service import StrategyService
from stratgraph.utils.logger import bind_strategy_context, get_logger


logger = get_logger("api.backtest")
router = APIRouter(prefix="/backtest", tags=["backtest"])


@lru_cache(maxsize=1)
def get_backtest_runner() -> BacktestRunner:
    return BacktestRunner.from_settings()


@router.get("/health")
@limiter.limit(READ_LIMIT)
async def backtest_health(
    request: Request,
    runner: BacktestRunner = Depends(get_backtest_runner),
) -> JSONResponse:
    """
    PURPOSE: Report whether the backtester executables and directory exist.

    Returns 200 when every component is present, 503 otherwise.
    """
    report = runner.health()
    code = status.HTTP_200_OK if report["healthy"] else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=report)


@router.post("/{strategy_id}", response_model=BacktestResponse)
@limiter.limit(WRITE_LIMIT)
async def run_backtest(
    request: Request,
    strategy_id: str,
    body: Optional[BacktestRequest] = None,
    runner: BacktestRunner = Depends(get_backtest_runner),
    db: AsyncSession = Depends(get_db),
) -> BacktestResponse:
    """
    PURPOSE: Run the external backtester on a stored strategy.

    Args:
        strategy_id: Stored strategy id
        body.start_date / body.end_date: Optional date window (both or neither)

    Raises:
        StrategyNotFoundError: 404
        InvalidStrategyError: 400, the stored graph is not valid
        BacktestError: 500, an external step failed
    """
    record = await StrategyService.get_record(db, strategy_id)
    if not record.is_valid:
        raise InvalidStrategyError("Cannot backtest invalid strategy", record.validation_errors)

    window = body or BacktestRequest()
    with bind_strategy_context(strategy_id=record.id, timeframe=record.timeframe):
        logger.info(
            "backtest_request",
            symbol=record.symbol,
            start_date=window.start_date,
            end_date=window.end_date,
        )
        artifacts = await runner.run(
            record.graph_dict(),
            record.timeframe,
            start_date=window.start_date,
            end_date=window.end_date,
        )
    return BacktestResponse(
        strategy_id=record.id,
        symbol=artifacts.symbol,
        timeframe=artifacts.timeframe,
        metrics=artifacts.metrics,
        trades=artifacts.trades,
        indicators=artifacts.indicators,
    )
