"""
Business logic layer for the strategy graph engine.

PURPOSE: Services sit between API routes and database models. They handle
persistence of strategy graphs and their validation outcome while remaining
stateless and database session-aware.

CALLED BY: API routes in stratgraph.api

Services:
    - StrategyService: Strategy graph storage, listing, editing and deletion
"""

from stratgraph.services.strategy_service import StrategyService

__all__ = ["StrategyService"]
