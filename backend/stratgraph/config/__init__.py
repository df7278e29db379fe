"""
PURPOSE: Export configuration settings and constants for the strategy graph engine.

This module centralizes access to all configuration settings and constants
used throughout the package.
"""

from .constants import (
    ActionType,
    NodeType,
    OperandKind,
    QtyType,
    TIMEFRAMES,
)
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "ActionType",
    "NodeType",
    "OperandKind",
    "QtyType",
    "TIMEFRAMES",
]
