"""
PURPOSE: Tests for the request schemas and the typed graph model.

Tests validation of:
- Interpret / validate / backtest request bodies
- Conversion of raw graphs into the typed model and back to wire format
"""

import pytest
from pydantic import ValidationError

from graph_factory import (
    action,
    binary,
    call,
    condition,
    enter_long,
    exit_long,
    graph,
    ident,
    no_action,
    num,
    rsi,
    rsi_entry_graph,
    rsi_round_trip_graph,
)
from stratgraph.backtest.runner import BacktestRunner
from stratgraph.config.constants import ActionType
from stratgraph.core.exceptions import InvalidStrategyError
from stratgraph.schemas.graph import ActionNode, ConditionNode, FuncCall, parse_strategy_graph
from stratgraph.schemas.strategy import BacktestRequest, InterpretRequest, StrategyGraphUpdate, ValidateRequest


class TestInterpretRequest:
    """Test InterpretRequest schema."""

    def test_valid_request_normalizes_symbol(self):
        req = InterpretRequest(userQuery="buy when RSI < 30", symbol=" aapl ", timeframe="1H")
        assert req.user_query == "buy when RSI < 30"
        assert req.symbol == "AAPL"

    def test_accepts_field_names(self):
        req = InterpretRequest(user_query="buy", symbol="MSFT", timeframe="1D")
        assert req.timeframe == "1D"

    def test_empty_query_rejected(self):
        with pytest.raises(ValidationError):
            InterpretRequest(userQuery="", symbol="AAPL", timeframe="1H")

    def test_bad_symbol_rejected(self):
        with pytest.raises(ValidationError, match="invalid symbol"):
            InterpretRequest(userQuery="buy", symbol="not a ticker!", timeframe="1H")

    def test_bad_timeframe_rejected(self):
        with pytest.raises(ValidationError, match="Supported: 1M, 5M, 15M, 1H, 4H, 1D, 1W"):
            InterpretRequest(userQuery="buy", symbol="AAPL", timeframe="3H")


class TestValidateRequest:
    """Test ValidateRequest schema."""

    def test_defaults(self):
        req = ValidateRequest(graph={"nodes": []})
        assert req.repair is True
        assert req.timeframe is None
        assert req.symbol is None

    def test_timeframe_checked_when_given(self):
        with pytest.raises(ValidationError):
            ValidateRequest(graph={}, timeframe="1Y")


class TestBacktestRequest:
    """Test BacktestRequest date patterns."""

    def test_dates_optional(self):
        req = BacktestRequest()
        assert req.start_date is None and req.end_date is None

    def test_iso_dates(self):
        req = BacktestRequest(startDate="2024-01-01", endDate="2024-06-30")
        assert (req.start_date, req.end_date) == ("2024-01-01", "2024-06-30")

    def test_other_formats_rejected(self):
        with pytest.raises(ValidationError):
            BacktestRequest(startDate="2024/01/01")


class TestStrategyGraphUpdate:
    def test_aliases(self):
        update = StrategyGraphUpdate(entryNode="cond1", nodes=[], suggestedEdits=["add a stop"])
        assert update.entry_node == "cond1"
        assert update.suggested_edits == ["add a stop"]

    def test_suggested_edits_default_none(self):
        assert StrategyGraphUpdate(entryNode="cond1", nodes=[]).suggested_edits is None


class TestParseStrategyGraph:
    """Test the typed graph model."""

    def test_parses_round_trip_graph(self):
        typed = parse_strategy_graph(rsi_round_trip_graph())
        assert typed.symbol == "AAPL"
        assert typed.entry_node == "cond1"
        assert isinstance(typed.node("cond1"), ConditionNode)
        buy = typed.node("buy")
        assert isinstance(buy, ActionNode)
        assert buy.action_type is ActionType.ENTER_LONG
        assert buy.successors() == []
        assert typed.node("cond1").successors() == ["buy", "cond2"]
        assert typed.node("missing") is None

    def test_nested_func_call_with_offset(self):
        expr = {
            "kind": "binary",
            "op": ">",
            "left": call("close", offset={"unit": "bars", "value": 1}),
            "right": call("sma", ident("close"), num(20)),
        }
        typed = parse_strategy_graph(graph([condition("cond1", expr, "buy"), enter_long("buy")]))
        left = typed.node("cond1").expr.left
        assert isinstance(left, FuncCall)
        assert left.offset.value == 1

    def test_duplicate_ids_rejected(self):
        g = graph([enter_long("buy"), exit_long("buy")], entry="buy")
        with pytest.raises(InvalidStrategyError) as exc_info:
            parse_strategy_graph(g)
        assert any("duplicate node id 'buy'" in msg for msg in exc_info.value.validation_errors)

    def test_unknown_action_rejected(self):
        g = graph([{"id": "a", "type": "action", "actionType": "HODL"}], entry="a")
        with pytest.raises(InvalidStrategyError):
            parse_strategy_graph(g)

    def test_non_positive_qty_rejected(self):
        with pytest.raises(InvalidStrategyError):
            parse_strategy_graph(graph([enter_long("buy", qty=0)], entry="buy"))

    def test_boolean_qty_rejected(self):
        with pytest.raises(InvalidStrategyError):
            parse_strategy_graph(graph([enter_long("buy", qty=True)], entry="buy"))

    def test_empty_nodes_rejected(self):
        with pytest.raises(InvalidStrategyError) as exc_info:
            parse_strategy_graph(graph([]))
        assert exc_info.value.status_code == 400

    def test_wire_nodes_keep_null_successors(self):
        typed = parse_strategy_graph(graph([enter_long("buy")], entry="buy"))
        assert typed.wire_nodes() == [{
            "id": "buy",
            "type": "action",
            "actionType": "ENTER_LONG",
            "symbol": "AAPL",
            "qty": 10,
            "qtyType": "PERCENT_EQUITY",
            "next": None,
        }]

    def test_codegen_payload_drops_metadata(self):
        g = rsi_round_trip_graph()
        g["warnings"] = ["Auto-fixed: something"]
        g["suggestedEdits"] = ["add a stop loss"]
        payload = parse_strategy_graph(g).to_codegen_payload("1D")
        assert set(payload) == {"symbol", "timeframe", "entryNode", "nodes"}
        assert payload["timeframe"] == "1D"
        assert [n["id"] for n in payload["nodes"]] == ["cond1", "buy", "cond2", "sell", "noop"]
        assert payload["nodes"][0]["expr"]["left"] == {
            "kind": "funcCall",
            "name": "rsi",
            "args": [{"kind": "identifier", "name": "close"}, {"kind": "numberLiteral", "value": 14}],
        }


def _null_args_graph():
    """ATR with every argument defaulted, sent as "args": null."""
    return graph([
        condition("cond1", binary(">", {"kind": "funcCall", "name": "atr", "args": None}, num(2)), "buy", "noop"),
        enter_long("buy"),
        no_action("noop"),
    ])


def _legacy_qty_type_graph():
    g = rsi_round_trip_graph()
    g["nodes"][1] = action("buy", "ENTER_LONG", symbol="AAPL", qty=5, qty_type="ABSOLUTE")
    return g


def _offset_graph():
    yesterday = call("rsi", ident("close"), num(14), offset={"unit": "bars", "value": 1})
    return graph([
        condition("cond1", binary("<", rsi(), yesterday), "buy", "noop"),
        enter_long("buy"),
        no_action("noop"),
    ])


def _noisy_metadata_graph():
    g = rsi_round_trip_graph()
    g["warnings"] = "Auto-fixed: something"
    g["suggestedEdits"] = [1, "add a stop loss", None]
    return g


VALID_GRAPHS = {
    "rsi_entry": rsi_entry_graph,
    "rsi_round_trip": rsi_round_trip_graph,
    "null_args": _null_args_graph,
    "legacy_qty_type": _legacy_qty_type_graph,
    "offset": _offset_graph,
    "noisy_metadata": _noisy_metadata_graph,
}


class TestValidatorHandoff:
    """Every graph the validator accepts must convert into a codegen payload."""

    @pytest.mark.parametrize("name", sorted(VALID_GRAPHS))
    def test_valid_graph_builds_payload(self, name, validator):
        g = VALID_GRAPHS[name]()
        result = validator.validate(g, "1H")
        assert result.is_valid is True, result.errors

        typed = parse_strategy_graph(g)
        runner = BacktestRunner("/nonexistent", "codegen", "backtest", validator=validator)
        payload = runner.build_payload(g, "1H")
        assert [n["id"] for n in payload["nodes"]] == [n["id"] for n in g["nodes"]]
        assert payload["nodes"] == typed.wire_nodes()

    def test_null_args_become_empty(self):
        atr = parse_strategy_graph(_null_args_graph()).node("cond1").expr.left
        assert isinstance(atr, FuncCall)
        assert atr.args == []

    def test_legacy_qty_type_is_emitted_canonically(self):
        buy = parse_strategy_graph(_legacy_qty_type_graph()).wire_nodes()[1]
        assert buy["qtyType"] == "ABSOLUTE"
        assert "qty_type" not in buy

    def test_noisy_metadata_is_dropped(self):
        typed = parse_strategy_graph(_noisy_metadata_graph())
        assert typed.warnings == []
        assert typed.suggested_edits == ["add a stop loss"]

    def test_bad_node_id_is_rejected_by_both(self, validator):
        """Test an id like "cond.1" fails validation, so it never reaches the code generator."""
        g = rsi_entry_graph()
        g["entryNode"] = "cond.1"
        g["nodes"][0]["id"] = "cond.1"

        result = validator.validate(g, "1H")
        assert result.is_valid is False
        assert "Node cond.1: id must be 1-64 letters, digits, '_' or '-'" in result.errors
        with pytest.raises(InvalidStrategyError):
            parse_strategy_graph(g)
