"""
PURPOSE: DSL catalog: the table of functions, actions, operators and offset
units a strategy graph may use, with each entry's argument schema.

The catalog is pure data. It is loaded once from JSON, frozen, and shared by
reference across every validation call; nothing writes to it afterwards, so
concurrent validators need no locking.

CALLED BY:
    - validation/* (explicit `catalog` parameter)
    - dsl/prompts.py (system prompt rendering)
    - api/routes_strategies.py (GET /strategies/catalog)
    - main.py (loaded at startup so a broken catalog fails fast)
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from stratgraph.config.constants import PRICE_IDENTIFIERS, ActionType
from stratgraph.config.settings import settings
from stratgraph.core.exceptions import CatalogLoadError
from stratgraph.utils.logger import get_logger

logger = get_logger("dsl.catalog")

BUNDLED_SPEC_PATH = Path(__file__).parent / "dsl_spec.json"

_catalog_cache: Dict[str, "Catalog"] = {}


class ArgSpec(BaseModel):
    """One argument of a function or action."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    allowed_values: Optional[Tuple[Any, ...]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    default: Any = None
    description: str = ""

    @property
    def has_default(self) -> bool:
        # A declared `"default": null` still counts as a default
        return "default" in self.model_fields_set

    @property
    def is_required(self) -> bool:
        return not self.has_default


class FunctionSpec(BaseModel):
    """A callable DSL function (indicator, price accessor, time filter...)."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: str = "general"
    description: str = ""
    args: Tuple[ArgSpec, ...] = ()
    return_type: Optional[str] = None

    @property
    def required_arg_count(self) -> int:
        return sum(1 for arg in self.args if arg.is_required)


class ActionSpec(BaseModel):
    """A trading action an action node may carry."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    args: Tuple[ArgSpec, ...] = ()


class OperatorSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    arithmetic: Tuple[str, ...] = ()
    comparison: Tuple[str, ...] = ()


class OffsetSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    units: Tuple[str, ...] = ()


class Catalog(BaseModel):
    """
    PURPOSE: Immutable, queryable view of the DSL specification.

    Lookups by name are backed by dicts built once at construction so that
    validating a function call is a constant-time membership check.
    """

    model_config = ConfigDict(frozen=True)

    version: str = "1.0"
    description: str = ""
    types: Tuple[str, ...] = ()
    identifiers: Tuple[str, ...] = PRICE_IDENTIFIERS
    operators: OperatorSpec = Field(default_factory=OperatorSpec)
    offsets: OffsetSpec = Field(default_factory=OffsetSpec)
    quantity_types: Tuple[str, ...] = ()
    functions: Tuple[FunctionSpec, ...] = ()
    actions: Tuple[ActionSpec, ...] = ()

    _functions_by_name: Dict[str, FunctionSpec] = PrivateAttr(default_factory=dict)
    _actions_by_name: Dict[str, ActionSpec] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._functions_by_name = {fn.name: fn for fn in self.functions}
        self._actions_by_name = {action.name: action for action in self.actions}

    # ── Queries ─────────────────────────────────────────────────

    def function_names(self) -> Tuple[str, ...]:
        return tuple(fn.name for fn in self.functions)

    def action_names(self) -> Tuple[str, ...]:
        return tuple(action.name for action in self.actions)

    def function_spec(self, name: str) -> Optional[FunctionSpec]:
        return self._functions_by_name.get(name)

    def action_spec(self, name: str) -> Optional[ActionSpec]:
        return self._actions_by_name.get(name)

    def has_function(self, name: Any) -> bool:
        return isinstance(name, str) and name in self._functions_by_name

    def has_action(self, name: Any) -> bool:
        return isinstance(name, str) and name in self._actions_by_name

    def comparison_operators(self) -> Tuple[str, ...]:
        return self.operators.comparison

    def arithmetic_operators(self) -> Tuple[str, ...]:
        return self.operators.arithmetic

    def offset_units(self) -> Tuple[str, ...]:
        return self.offsets.units

    def functions_by_category(self) -> Dict[str, Tuple[FunctionSpec, ...]]:
        """Group functions by category, preserving catalog order."""
        grouped: Dict[str, list] = {}
        for fn in self.functions:
            grouped.setdefault(fn.category, []).append(fn)
        return {category: tuple(fns) for category, fns in grouped.items()}

    def summary(self) -> Dict[str, Any]:
        """Compact JSON-able description for API clients."""
        return {
            "version": self.version,
            "functions": {
                fn.name: {
                    "category": fn.category,
                    "args": [arg.name for arg in fn.args],
                    "required_args": fn.required_arg_count,
                    "return_type": fn.return_type,
                }
                for fn in self.functions
            },
            "actions": list(self.action_names()),
            "operators": {
                "comparison": list(self.comparison_operators()),
                "arithmetic": list(self.arithmetic_operators()),
            },
            "offset_units": list(self.offset_units()),
            "quantity_types": list(self.quantity_types),
            "identifiers": list(self.identifiers),
        }


def _check_action_variants(catalog: Catalog) -> None:
    """Every catalog action must map onto an ActionType variant."""
    known = {member.value for member in ActionType}
    unmodelled = [name for name in catalog.action_names() if name not in known]
    if unmodelled:
        raise CatalogLoadError(
            f"Catalog declares actions with no ActionType variant: {', '.join(unmodelled)}",
            {"actions": unmodelled},
        )


def parse_catalog(raw: Dict[str, Any]) -> Catalog:
    """
    PURPOSE: Build a Catalog from an already-decoded JSON document.

    Accepts either the bare spec object or one wrapped in a top-level
    "dsl_spec" key.

    Raises:
        CatalogLoadError: If the document does not match the catalog schema.
    """
    if not isinstance(raw, dict):
        raise CatalogLoadError("DSL spec must be a JSON object")
    spec = raw.get("dsl_spec", raw)
    try:
        catalog = Catalog.model_validate(spec)
    except ValidationError as e:
        raise CatalogLoadError(f"DSL spec does not match the catalog schema: {e}") from e
    _check_action_variants(catalog)
    return catalog


def load_catalog(source: Union[str, Path, None] = None) -> Catalog:
    """
    PURPOSE: Load the DSL catalog from a JSON file, caching by resolved path.

    Subsequent calls with the same source return the same Catalog object
    without re-reading the file.

    Args:
        source: Path to the JSON spec. None or "" means the bundled spec.

    Returns:
        Catalog: Frozen catalog instance.

    Raises:
        CatalogLoadError: If the file is missing or not a valid spec.
    """
    path = Path(source) if source else BUNDLED_SPEC_PATH
    key = str(path.resolve())

    cached = _catalog_cache.get(key)
    if cached is not None:
        return cached

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogLoadError(f"DSL spec not found: {path}", {"path": str(path)}) from e
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogLoadError(f"DSL spec unreadable: {path}: {e}", {"path": str(path)}) from e

    catalog = parse_catalog(raw)
    _catalog_cache[key] = catalog

    logger.info(
        "dsl_catalog_loaded",
        path=key,
        version=catalog.version,
        functions=len(catalog.functions),
        actions=len(catalog.actions),
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """
    PURPOSE: Process-wide default catalog, built once from settings.

    Used as the default for validator entry points and as a FastAPI
    dependency; callers that need a different catalog pass one explicitly.
    """
    return load_catalog(settings.DSL_SPEC_PATH or None)
