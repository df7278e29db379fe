"""
PURPOSE: Tests for the DSL catalog loader and its queries.

Tests cover:
- Loading and caching the bundled spec
- Lookups for functions, actions and operators
- Rejection of malformed or unmodelled specs
"""

import json

import pytest

from stratgraph.core.exceptions import CatalogLoadError
from stratgraph.dsl.catalog import ArgSpec, load_catalog, parse_catalog


class TestBundledCatalog:
    """Test the catalog shipped with the package."""

    def test_loads_version_and_tables(self, catalog):
        """Test the bundled spec decodes into a populated catalog."""
        assert catalog.version == "2.0"
        assert "rsi" in catalog.function_names()
        assert "ENTER_LONG" in catalog.action_names()
        assert "<" in catalog.comparison_operators()
        assert "+" in catalog.arithmetic_operators()
        assert "bars" in catalog.offset_units()
        assert "PERCENT_POSITION" in catalog.quantity_types

    def test_load_is_cached(self):
        """Test repeated loads return the same frozen object."""
        assert load_catalog() is load_catalog()

    def test_function_lookup(self, catalog):
        """Test function specs expose argument schemas."""
        spec = catalog.function_spec("rsi")
        assert spec.category == "momentum"
        assert [arg.name for arg in spec.args] == ["source", "period"]
        assert spec.required_arg_count == 1
        assert catalog.function_spec("does_not_exist") is None

    def test_membership_checks_reject_non_strings(self, catalog):
        """Test has_function / has_action are safe on arbitrary JSON values."""
        assert catalog.has_function("ema") is True
        assert catalog.has_function(None) is False
        assert catalog.has_function(["ema"]) is False
        assert catalog.has_action("EXIT_ALL") is True
        assert catalog.has_action("BUY") is False

    def test_functions_by_category_preserves_order(self, catalog):
        """Test grouping keeps catalog order within each category."""
        grouped = catalog.functions_by_category()
        trend = [fn.name for fn in grouped["trend"]]
        assert trend[:3] == ["sma", "ema", "wma"]

    def test_summary_is_json_serializable(self, catalog):
        """Test the API summary round-trips through json."""
        summary = catalog.summary()
        assert summary["functions"]["rsi"]["required_args"] == 1
        assert "NO_ACTION" in summary["actions"]
        json.dumps(summary)


class TestArgSpec:
    """Test argument default handling."""

    def test_explicit_null_default_counts(self):
        """Test a declared null default makes the argument optional."""
        arg = ArgSpec.model_validate({"name": "field", "type": "string", "default": None})
        assert arg.has_default is True
        assert arg.is_required is False

    def test_missing_default_is_required(self):
        arg = ArgSpec.model_validate({"name": "period", "type": "number"})
        assert arg.is_required is True


class TestCatalogErrors:
    """Test malformed specs fail loudly."""

    def test_missing_file(self, tmp_path):
        """Test a missing spec file raises CatalogLoadError."""
        with pytest.raises(CatalogLoadError, match="not found"):
            load_catalog(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test an unparseable spec file raises CatalogLoadError."""
        path = tmp_path / "broken.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(CatalogLoadError, match="unreadable"):
            load_catalog(path)

    def test_non_object_document(self):
        with pytest.raises(CatalogLoadError):
            parse_catalog(["rsi"])

    def test_schema_mismatch(self):
        """Test a function entry without a name is rejected."""
        with pytest.raises(CatalogLoadError, match="catalog schema"):
            parse_catalog({"functions": [{"category": "trend"}]})

    def test_unmodelled_action(self):
        """Test every catalog action must have an ActionType variant."""
        with pytest.raises(CatalogLoadError, match="TELEPORT"):
            parse_catalog({"actions": [{"name": "TELEPORT"}]})

    def test_bare_spec_without_wrapper(self, tmp_path):
        """Test a spec without the top-level dsl_spec key still loads."""
        path = tmp_path / "bare.json"
        path.write_text(
            json.dumps({"version": "9.9", "functions": [{"name": "atr", "args": []}]}),
            encoding="utf-8",
        )
        custom = load_catalog(path)
        assert custom.version == "9.9"
        assert custom.function_names() == ("atr",)
