"""
PURPOSE: API router initialization and exports for the strategy graph engine.

This module aggregates the strategy and backtest routers into a single
api_router that is included in the main FastAPI application.
"""

from fastapi import APIRouter

from stratgraph.api.routes_strategies import router as strategies_router
from stratgraph.api.routes_backtest import router as backtest_router

# Create the main API router
api_router = APIRouter(prefix="/api", tags=["api"])

# Include all sub-routers
api_router.include_router(strategies_router, tags=["strategies"])
api_router.include_router(backtest_router, tags=["backtest"])

__all__ = ["api_router"]
