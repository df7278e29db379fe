"""
PURPOSE: Strategy graph validation package.

Validates LLM-produced strategy graphs against the DSL catalog: operands,
comparisons, nodes, connectivity and financial sanity.
"""

from .context import ValidationContext
from .result import Diagnostic, Diagnostics, ErrorCategory, ValidationResult
from .validator import StrategyValidator, validate_strategy

__all__ = [
    "Diagnostic",
    "Diagnostics",
    "ErrorCategory",
    "StrategyValidator",
    "ValidationContext",
    "ValidationResult",
    "validate_strategy",
]
