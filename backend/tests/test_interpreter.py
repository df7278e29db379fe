"""
PURPOSE: Tests for the natural language to graph interpretation pipeline.

The LLM is replaced by a scripted stand-in; everything after the
completion (extraction, repair, validation) runs for real.
"""

import json

import pytest

from graph_factory import action, condition, rsi_round_trip_graph
from stratgraph.core.exceptions import LLMResponseError
from stratgraph.dsl.prompts import PROMPT_VERSION
from stratgraph.strategy_builder.interpreter import StrategyInterpreter


def _reply(g, **extra):
    g.update(extra)
    return "```json\n" + json.dumps(g, indent=2) + "\n```"


class TestSystemPrompt:
    def test_prompt_lists_catalog(self, catalog, scripted_llm):
        prompt = StrategyInterpreter(scripted_llm(), catalog=catalog).system_prompt
        assert "DSL SPECIFICATION v2.0" in prompt
        assert "### MOMENTUM FUNCTIONS:" in prompt
        assert "- rsi(" in prompt
        assert "- ENTER_LONG(" in prompt
        assert "qtyType" in prompt


class TestInterpret:
    async def test_valid_graph(self, catalog, scripted_llm):
        llm = scripted_llm(_reply(rsi_round_trip_graph(), suggestedEdits=["Add a stop-loss"]))
        interpreter = StrategyInterpreter(llm, catalog=catalog)

        result = await interpreter.interpret("Buy when RSI < 30, sell above 70", "aapl", "1H")

        assert result.is_valid is True
        assert result.symbol == "AAPL"
        assert result.repair_notes == []
        assert result.warnings == []
        assert result.suggested_edits == ["Add a stop-loss"]
        assert result.model == "scripted-model"
        assert result.prompt_version == PROMPT_VERSION

        system_prompt, user_prompt = llm.calls[0]
        assert system_prompt == interpreter.system_prompt
        assert 'User Strategy Query: "Buy when RSI < 30, sell above 70"' in user_prompt
        assert "- Symbol: AAPL" in user_prompt
        assert "- Timeframe: 1H" in user_prompt

    async def test_repairs_are_reported_as_warnings(self, catalog, scripted_llm):
        """Test repair notes precede validator warnings in the result."""
        g = {
            "entryNode": "cond1",
            "nodes": [
                condition("cond1", {"kind": "funcCall"}, "sell", None),
                action("sell", "EXIT_LONG", qty="ALL"),
            ],
            "warnings": ["Model note", 42],
        }
        llm = scripted_llm(json.dumps(g))
        result = await StrategyInterpreter(llm, catalog=catalog).interpret("sell everything", "MSFT", "1D")

        assert result.is_valid is True
        assert result.graph["symbol"] == "MSFT"
        assert result.graph["nodes"][1]["qty"] == 100
        assert result.warnings[0] == "Model note"
        assert result.warnings[1:1 + len(result.repair_notes)] == result.repair_notes
        assert "Condition node cond1: no explicit nextIfFalse (implying NO_TRADE)" in result.warnings
        assert 42 not in result.graph["warnings"]

    async def test_invalid_graph_is_still_returned(self, catalog, scripted_llm):
        g = rsi_round_trip_graph()
        g["nodes"][0]["nextIfTrue"] = "missing"
        llm = scripted_llm(json.dumps(g))
        result = await StrategyInterpreter(llm, catalog=catalog).interpret("rsi strategy", "AAPL", "1H")

        assert result.is_valid is False
        assert any("'missing'" in e for e in result.validation.errors)
        assert result.graph["nodes"][0]["nextIfTrue"] == "missing"

    async def test_non_string_metadata_dropped(self, catalog, scripted_llm):
        llm = scripted_llm(_reply(rsi_round_trip_graph(), suggestedEdits="tighten stops"))
        result = await StrategyInterpreter(llm, catalog=catalog).interpret("rsi", "AAPL", "1H")
        assert result.suggested_edits == []

    async def test_unparseable_reply(self, catalog, scripted_llm):
        llm = scripted_llm("I'm sorry, I can't produce that strategy.")
        with pytest.raises(LLMResponseError):
            await StrategyInterpreter(llm, catalog=catalog).interpret("rsi", "AAPL", "1H")

    async def test_llm_failure_propagates(self, catalog, scripted_llm):
        llm = scripted_llm(LLMResponseError("LLM API error (HTTP 500): boom"))
        with pytest.raises(LLMResponseError, match="boom"):
            await StrategyInterpreter(llm, catalog=catalog).interpret("rsi", "AAPL", "1H")
