"""
PURPOSE: Input validation functions for request fields (symbols, timeframes, node ids).
Ensures data integrity before a request reaches the interpreter or the validator.
"""

import re

from stratgraph.config.constants import TIMEFRAMES

# Equity, index and FX style tickers: AAPL, BRK.B, ^GSPC, EURUSD=X, BTC-USD
_SYMBOL_PATTERN = re.compile(r"^\^?[A-Z0-9][A-Z0-9.\-=]{0,14}$")

_NODE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


def normalize_symbol(symbol: str) -> str:
    """
    PURPOSE: Canonicalize a ticker symbol (trimmed, upper-case).

    Args:
        symbol: Raw symbol from user input or LLM output.

    Returns:
        str: Upper-cased symbol with surrounding whitespace removed.
    """
    return str(symbol or "").strip().upper()


def validate_symbol(symbol: str) -> bool:
    """
    PURPOSE: Validate that the provided symbol looks like a ticker.

    Args:
        symbol: Trading symbol to validate (case-insensitive).

    Returns:
        bool: True if symbol matches the ticker pattern, False otherwise.
    """
    if not isinstance(symbol, str):
        return False
    return bool(_SYMBOL_PATTERN.match(normalize_symbol(symbol)))


def validate_timeframe(timeframe: str) -> bool:
    """
    PURPOSE: Validate that the timeframe is one the backtester supports.

    Args:
        timeframe: Timeframe code, e.g. "1H" or "1D". Case-sensitive.

    Returns:
        bool: True if timeframe is in TIMEFRAMES, False otherwise.
    """
    return timeframe in TIMEFRAMES


def validate_node_id(node_id: str) -> bool:
    """
    PURPOSE: Validate that a node id is a short identifier-like string.

    Args:
        node_id: Node id from an edited graph.

    Returns:
        bool: True if node_id is 1-64 characters of [A-Za-z0-9_-].
    """
    return isinstance(node_id, str) and bool(_NODE_ID_PATTERN.match(node_id))
