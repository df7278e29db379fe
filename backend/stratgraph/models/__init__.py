"""Database models for the strategy graph engine.

Import all models here so Base.metadata sees them before create_all.
"""

from stratgraph.models.strategy import StrategyGraphRecord

__all__ = [
    "StrategyGraphRecord",
]
