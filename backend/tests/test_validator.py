"""
PURPOSE: End-to-end tests for the validation orchestrator.

Covers the documented graph scenarios, the structural short-circuit, and
the guarantees that validation neither mutates nor raises.
"""

import copy

from graph_factory import (
    action,
    binary,
    condition,
    enter_long,
    graph,
    no_action,
    num,
    rsi,
    rsi_entry_graph,
    rsi_round_trip_graph,
)
from stratgraph.validation import ErrorCategory, validate_strategy


class TestScenarios:
    """Test the reference graphs."""

    def test_valid_rsi_entry(self, validator):
        """Test a valid entry-only graph passes with an exit advisory."""
        result = validator.validate(rsi_entry_graph(), "1H")
        assert result.is_valid is True
        assert result.errors == []
        assert any("enters positions but has no explicit exit" in w for w in result.warnings)

    def test_dangling_successor(self, validator):
        """Test nextIfTrue pointing at a missing node invalidates the graph."""
        g = rsi_entry_graph()
        g["nodes"][0]["nextIfTrue"] = "missing"
        result = validator.validate(g, "1H")
        assert result.is_valid is False
        assert any("'missing'" in e for e in result.errors)
        assert result.errors_in(ErrorCategory.REFERENCE)

    def test_entry_without_qty(self, validator):
        """Test ENTER_LONG with no qty is an error naming the node."""
        g = rsi_entry_graph()
        del g["nodes"][1]["qty"]
        result = validator.validate(g, "1H")
        assert result.is_valid is False
        assert "Action node buy: ENTER_LONG requires qty" in result.errors

    def test_round_trip_has_no_findings(self, validator):
        result = validator.validate(rsi_round_trip_graph(), "1H")
        assert result.to_dict() == {"isValid": True, "errors": [], "warnings": []}


class TestStructure:
    """Test the top-level shape checks."""

    def test_non_object(self, validator):
        result = validator.validate(["not", "a", "graph"])
        assert result.errors == ["Strategy graph must be a JSON object"]

    def test_missing_fields_short_circuit(self, validator):
        """Test a graph without nodes reports only structural errors."""
        result = validator.validate({"symbol": "", "nodes": []})
        assert result.errors == [
            "Missing or invalid symbol",
            "Missing or invalid entryNode",
            "nodes must be a non-empty array",
        ]
        assert result.warnings == []

    def test_missing_header_fields_still_check_nodes(self, validator):
        """Test nodes are validated when only symbol and entryNode are missing."""
        g = graph([
            condition("cond1", binary("+", rsi(), num(30)), "buy", "noop"),
            enter_long("buy"),
            no_action("noop"),
        ])
        g["symbol"] = ""
        del g["entryNode"]
        errors = validator.validate(g).errors
        assert errors[:2] == ["Missing or invalid symbol", "Missing or invalid entryNode"]
        assert any("arithmetic operator '+'" in e for e in errors)
        assert not any(e.startswith("Entry node") for e in errors)

    def test_node_errors_do_not_stop_connectivity(self, validator):
        """Test a bad operator and a cycle are both reported in one call."""
        g = graph([
            condition("cond1", binary("+", rsi(), num(30)), "buy", "noop"),
            enter_long("buy", next="cond1"),
            no_action("noop"),
        ])
        errors = validator.validate(g).errors
        assert any("arithmetic operator '+'" in e for e in errors)
        assert "Cycle detected: cond1 -> buy -> cond1" in errors

    def test_missing_entry_node(self, validator):
        g = rsi_entry_graph()
        g["entryNode"] = "start"
        result = validator.validate(g)
        assert result.errors == ["Entry node 'start' does not exist"]

    def test_duplicate_ids_reported_once(self, validator):
        g = rsi_entry_graph()
        g["nodes"].append(action("buy", "EXIT_ALL"))
        g["nodes"].append(action("buy", "EXIT_ALL"))
        errors = validator.validate(g).errors
        assert errors.count("Duplicate node ID: buy") == 1

    def test_unknown_timeframe_warns(self, validator):
        result = validator.validate(rsi_round_trip_graph(), "2H")
        assert result.is_valid is True
        assert result.warnings == ["Unknown timeframe '2H'. Supported: 1M, 5M, 15M, 1H, 4H, 1D, 1W"]


class TestGuarantees:
    def test_does_not_mutate_input(self, validator):
        g = rsi_entry_graph()
        g["nodes"][0]["nextIfTrue"] = "missing"
        snapshot = copy.deepcopy(g)
        validator.validate(g, "1D")
        assert g == snapshot

    def test_garbage_nodes_never_raise(self, validator):
        g = {"symbol": "AAPL", "entryNode": "x", "nodes": [None, 3, "x", [], {"id": None}]}
        result = validator.validate(g, "1H")
        assert result.is_valid is False

    def test_deterministic(self, validator):
        g = rsi_entry_graph()
        g["nodes"][2]["next"] = "ghost"
        assert validator.validate(g).to_dict() == validator.validate(g).to_dict()

    def test_validate_strategy_helper(self, catalog):
        result = validate_strategy(rsi_round_trip_graph(), "4H", catalog=catalog)
        assert result.is_valid is True
