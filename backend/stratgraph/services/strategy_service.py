"""
Strategy service for the strategy graph engine.

PURPOSE: Persist interpreted strategy graphs and their validation outcome;
re-validate user edits before storing them.

CALLED BY: api/routes_strategies.py, api/routes_backtest.py
"""

from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from stratgraph.core.exceptions import StrategyNotFoundError
from stratgraph.models.strategy import StrategyGraphRecord
from stratgraph.schemas.strategy import StrategyGraphUpdate, StrategyResponse, StrategySummary
from stratgraph.strategy_builder.interpreter import InterpretationResult
from stratgraph.utils.logger import get_logger
from stratgraph.validation.validator import StrategyValidator


logger = get_logger("services.strategy")


class StrategyService:
    """
    Service for managing persisted strategy graphs.

    PURPOSE: Provide create / read / list / edit / delete operations over
    StrategyGraphRecord rows.

    CALLED BY: API routes for strategy and backtest endpoints
    """

    @staticmethod
    async def create_from_interpretation(
        db: AsyncSession,
        result: InterpretationResult,
    ) -> StrategyResponse:
        """
        Store the graph produced by an interpretation request.

        The graph is stored whether or not it validated, so the user can
        fix it in the editor.

        CALLED BY: POST /api/strategies/interpret

        Args:
            db: Async database session
            result: Interpreter output

        Returns:
            StrategyResponse: The stored strategy
        """
        graph = result.graph
        record = StrategyGraphRecord(
            symbol=result.symbol,
            description=f'Interpreted from: "{result.user_query}"',
            user_query=result.user_query,
            timeframe=result.timeframe,
            entry_node=graph.get("entryNode") if isinstance(graph.get("entryNode"), str) else "",
            nodes=graph.get("nodes") if isinstance(graph.get("nodes"), list) else [],
            warnings=list(result.warnings),
            suggested_edits=list(result.suggested_edits),
            is_valid=result.is_valid,
            validation_errors=[] if result.is_valid else list(result.validation.errors),
            llm_model=result.model,
            llm_prompt_version=result.prompt_version,
        )

        try:
            db.add(record)
            await db.commit()
            await db.refresh(record)
        except Exception as e:
            logger.error("create_strategy_error", error=str(e), symbol=result.symbol)
            await db.rollback()
            raise

        logger.info("strategy_created", strategy_id=record.id, symbol=record.symbol, is_valid=record.is_valid)
        return StrategyResponse.from_record(record)

    @staticmethod
    async def get_record(db: AsyncSession, strategy_id: str) -> StrategyGraphRecord:
        """
        Fetch the ORM row for a strategy.

        Raises:
            StrategyNotFoundError: If no strategy has this id
        """
        record = await db.get(StrategyGraphRecord, strategy_id)
        if record is None:
            logger.info("strategy_not_found", strategy_id=strategy_id)
            raise StrategyNotFoundError(strategy_id)
        return record

    @staticmethod
    async def get(db: AsyncSession, strategy_id: str) -> StrategyResponse:
        """
        Retrieve a single strategy.

        CALLED BY: GET /api/strategies/{id}
        """
        record = await StrategyService.get_record(db, strategy_id)
        return StrategyResponse.from_record(record)

    @staticmethod
    async def list(
        db: AsyncSession,
        symbol: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StrategySummary]:
        """
        List strategies, newest first.

        CALLED BY: GET /api/strategies

        Args:
            db: Async database session
            symbol: Optional ticker filter
            limit: Page size
            offset: Rows to skip
        """
        stmt = select(StrategyGraphRecord).order_by(desc(StrategyGraphRecord.created_at))
        if symbol:
            stmt = stmt.where(StrategyGraphRecord.symbol == symbol.upper())
        stmt = stmt.limit(limit).offset(offset)

        result = await db.execute(stmt)
        records = result.scalars().all()

        logger.info("strategies_listed", count=len(records), symbol=symbol)
        return [StrategySummary.model_validate(r) for r in records]

    @staticmethod
    async def update_graph(
        db: AsyncSession,
        strategy_id: str,
        update: StrategyGraphUpdate,
        validator: Optional[StrategyValidator] = None,
    ) -> StrategyResponse:
        """
        Replace a strategy's graph with a user edit and re-validate it.

        The edited graph is checked against the stored symbol and timeframe;
        warnings are replaced by the fresh validator warnings.

        CALLED BY: PUT /api/strategies/{id}

        Raises:
            StrategyNotFoundError: If no strategy has this id
        """
        record = await StrategyService.get_record(db, strategy_id)
        validator = validator or StrategyValidator()

        graph = {
            "symbol": record.symbol,
            "entryNode": update.entry_node,
            "nodes": update.nodes,
        }
        validation = validator.validate(graph, record.timeframe)

        try:
            record.entry_node = update.entry_node
            record.nodes = update.nodes
            record.is_valid = validation.is_valid
            record.validation_errors = [] if validation.is_valid else validation.errors
            record.warnings = validation.warnings
            if update.suggested_edits is not None:
                record.suggested_edits = update.suggested_edits

            await db.commit()
            await db.refresh(record)
        except Exception as e:
            logger.error("update_strategy_error", error=str(e), strategy_id=strategy_id)
            await db.rollback()
            raise

        logger.info(
            "strategy_graph_updated",
            strategy_id=strategy_id,
            is_valid=validation.is_valid,
            errors=len(validation.errors),
        )
        return StrategyResponse.from_record(record)

    @staticmethod
    async def delete(db: AsyncSession, strategy_id: str) -> None:
        """
        Delete a strategy.

        CALLED BY: DELETE /api/strategies/{id}

        Raises:
            StrategyNotFoundError: If no strategy has this id
        """
        record = await StrategyService.get_record(db, strategy_id)
        try:
            await db.delete(record)
            await db.commit()
        except Exception as e:
            logger.error("delete_strategy_error", error=str(e), strategy_id=strategy_id)
            await db.rollback()
            raise

        logger.info("strategy_deleted", strategy_id=strategy_id)
