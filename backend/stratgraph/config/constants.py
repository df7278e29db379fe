"""
PURPOSE: Domain constants for the strategy graph engine.

Closed enumerations for the graph wire format (node types, operand kinds,
action kinds, quantity kinds) plus the fixed tables the validator and the
financial linter consult. Catalog data (functions, argument schemas) lives
in dsl/dsl_spec.json; these are the parts of the DSL that code branches on.
"""

from enum import Enum


class NodeType(str, Enum):
    """Graph node variants, carried in the node's `type` tag."""

    CONDITION = "condition"
    ACTION = "action"


class OperandKind(str, Enum):
    """Operand variants, carried in the operand's `kind` tag."""

    NUMBER_LITERAL = "numberLiteral"
    STRING_LITERAL = "stringLiteral"
    BOOL_LITERAL = "boolLiteral"
    IDENTIFIER = "identifier"
    FUNC_CALL = "funcCall"


# The only valid `kind` for a condition node's top-level expression
BINARY_EXPR_KIND = "binary"


class ActionType(str, Enum):
    """Trading actions an action node can carry."""

    ENTER_LONG = "ENTER_LONG"
    ENTER_SHORT = "ENTER_SHORT"
    EXIT_LONG = "EXIT_LONG"
    EXIT_SHORT = "EXIT_SHORT"
    EXIT_ALL = "EXIT_ALL"
    SET_STOP = "SET_STOP"
    SET_TRAILING_STOP = "SET_TRAILING_STOP"
    SET_TAKE_PROFIT = "SET_TAKE_PROFIT"
    CANCEL_ORDERS = "CANCEL_ORDERS"
    NO_ACTION = "NO_ACTION"


class QtyType(str, Enum):
    """Units for an action's `qty`."""

    ABSOLUTE = "ABSOLUTE"
    PERCENT_EQUITY = "PERCENT_EQUITY"
    PERCENT_POSITION = "PERCENT_POSITION"


# ── Action groups ─────────────────────────────────────────────

ENTRY_ACTIONS = frozenset({ActionType.ENTER_LONG.value, ActionType.ENTER_SHORT.value})

EXIT_ACTIONS = frozenset({ActionType.EXIT_LONG.value, ActionType.EXIT_SHORT.value})

# Any of these counts as position protection for the financial linter
PROTECTIVE_ACTIONS = frozenset({
    ActionType.EXIT_LONG.value,
    ActionType.EXIT_SHORT.value,
    ActionType.EXIT_ALL.value,
    ActionType.SET_STOP.value,
    ActionType.SET_TRAILING_STOP.value,
    ActionType.SET_TAKE_PROFIT.value,
})

# Actions that never refer to a single instrument
SYMBOL_EXEMPT_ACTIONS = frozenset({
    ActionType.NO_ACTION.value,
    ActionType.EXIT_ALL.value,
    ActionType.CANCEL_ORDERS.value,
})

# Param key each stop-management action is expected to carry
ACTION_REQUIRED_PARAMS = {
    ActionType.SET_STOP.value: "stop_price",
    ActionType.SET_TRAILING_STOP.value: "trail_percent",
    ActionType.SET_TAKE_PROFIT.value: "take_profit_price",
}

# ── Operators accepted by the repair pass as unary negation ───

NEGATION_OPERATORS = frozenset({"!", "NOT", "not"})

# ── Identifiers ───────────────────────────────────────────────

# Used when the catalog does not list its own identifiers
PRICE_IDENTIFIERS = ("close", "open", "high", "low", "volume")

# ── Timeframes ────────────────────────────────────────────────

TIMEFRAMES = ("1M", "5M", "15M", "1H", "4H", "1D", "1W")

DAILY_OR_SLOWER_TIMEFRAMES = frozenset({"1D", "1W"})

# ── Financial sanity thresholds ───────────────────────────────

RSI_FUNCTIONS = frozenset({"rsi"})
RSI_MIN_PERIOD = 5
RSI_MAX_PERIOD = 50

MOVING_AVERAGE_FUNCTIONS = frozenset({"ema", "sma", "wma"})
MA_MIN_PERIOD = 2
MA_MAX_PERIOD = 500

INTRADAY_FUNCTIONS = frozenset({"timeBetween", "timeOfDay", "sessionOpen"})

# ── Repair defaults ───────────────────────────────────────────

DEFAULT_ENTRY_QTY = 10
DEFAULT_EXIT_QTY = 100
HALF_EXIT_QTY = 50

# ── Validation limits ─────────────────────────────────────────

MAX_OPERAND_DEPTH = 32
