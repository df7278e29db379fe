"""
PURPOSE: Structured logging for the strategy graph engine.

Every event carries a level, an ISO timestamp and the emitting module. Request
scoped values (strategy_id, timeframe) are bound with bind_strategy_context()
and merged into each event logged inside that block, so validator and runner
logs can be joined back to the strategy they concern.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    PURPOSE: Configure structlog for JSON lines (production) or console output.

    Args:
        log_level: Logging level name. Unknown names fall back to INFO.
        json_logs: Render JSON when True, coloured key=value lines otherwise.
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def bind_strategy_context(**values: Any) -> Iterator[None]:
    """
    Bind values (None entries skipped) to every log event emitted in the block.
    """
    bound = {key: value for key, value in values.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(module_name: str) -> structlog.BoundLogger:
    """
    PURPOSE: Return a bound logger with module context for structured logging.

    Args:
        module_name: The name of the module requesting the logger (e.g., "__name__").
    """
    return structlog.get_logger().bind(module=module_name)
