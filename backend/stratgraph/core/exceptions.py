"""
PURPOSE: Exception hierarchy for the strategy graph engine.

Graph defects are never raised: the validator reports them as diagnostics.
These exceptions cover the failures around it: a catalog that cannot be
loaded, an LLM that returns nothing usable, missing strategies, and the
external code generator / backtester.

CALLED BY:
    - dsl/catalog.py (CatalogLoadError)
    - llm/client.py, repair/json_repair.py (LLMResponseError)
    - services/strategy_service.py (StrategyNotFoundError)
    - backtest/runner.py (InvalidStrategyError, BacktestError)
    - main.py (HTTP mapping)
"""

from typing import Any, Dict, Optional


class StratGraphError(Exception):
    """Base exception for all strategy graph engine errors."""

    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_code": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class CatalogLoadError(StratGraphError):
    """The DSL catalog is missing or unparseable. Fatal to the process."""


class LLMResponseError(StratGraphError):
    """The language model failed or returned content with no usable JSON object."""

    status_code = 502


class StrategyNotFoundError(StratGraphError):
    """No persisted strategy exists for the requested id."""

    status_code = 404

    def __init__(self, strategy_id: str) -> None:
        super().__init__(f"Strategy {strategy_id} not found", {"strategy_id": strategy_id})
        self.strategy_id = strategy_id


class InvalidStrategyError(StratGraphError):
    """An operation that needs a valid graph was given an invalid one."""

    status_code = 400

    def __init__(self, message: str, validation_errors: Optional[list] = None) -> None:
        super().__init__(message, {"validation_errors": list(validation_errors or [])})
        self.validation_errors = list(validation_errors or [])


class BacktestError(StratGraphError):
    """The external code generator, compiler or backtester failed."""
