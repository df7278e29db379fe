"""
Typed strategy graph IR.

Closed tagged unions over the wire format: operands are discriminated on
`kind`, nodes on `type`. Raw LLM output is checked by the validator, which
reports every defect at once; these models are for graphs that already
passed validation, where an exhaustive typed view is wanted (the code
generator handoff).
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

from stratgraph.config.constants import ActionType, QtyType
from stratgraph.core.exceptions import InvalidStrategyError
from stratgraph.utils.validators import validate_node_id

Number = Union[StrictInt, StrictFloat]
NonNegativeNumber = Union[Annotated[StrictInt, Field(ge=0)], Annotated[StrictFloat, Field(ge=0)]]
PositiveNumber = Union[Annotated[StrictInt, Field(gt=0)], Annotated[StrictFloat, Field(gt=0)]]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NumberLiteral(_WireModel):
    kind: Literal["numberLiteral"] = "numberLiteral"
    value: Number


class StringLiteral(_WireModel):
    kind: Literal["stringLiteral"] = "stringLiteral"
    value: StrictStr


class BoolLiteral(_WireModel):
    kind: Literal["boolLiteral"] = "boolLiteral"
    value: StrictBool


class Identifier(_WireModel):
    kind: Literal["identifier"] = "identifier"
    name: str = Field(min_length=1)


class Offset(_WireModel):
    """Lookback: evaluate the call `value` units in the past."""

    unit: str
    value: NonNegativeNumber


class FuncCall(_WireModel):
    kind: Literal["funcCall"] = "funcCall"
    name: str = Field(min_length=1)
    args: List["Operand"] = Field(default_factory=list)
    offset: Optional[Offset] = None

    @field_validator("args", mode="before")
    @classmethod
    def null_args_as_empty(cls, v: Any) -> Any:
        """`"args": null` means a call with no arguments."""
        return [] if v is None else v


Operand = Annotated[
    Union[NumberLiteral, StringLiteral, BoolLiteral, Identifier, FuncCall],
    Field(discriminator="kind"),
]

FuncCall.model_rebuild()


class BinaryExpr(_WireModel):
    kind: Literal["binary"] = "binary"
    op: str
    left: Operand
    right: Operand


class ConditionNode(_WireModel):
    id: str
    type: Literal["condition"] = "condition"
    expr: BinaryExpr
    next_if_true: Optional[str] = Field(default=None, alias="nextIfTrue")
    next_if_false: Optional[str] = Field(default=None, alias="nextIfFalse")

    def successors(self) -> List[str]:
        return [target for target in (self.next_if_true, self.next_if_false) if target]


class ActionNode(_WireModel):
    id: str
    type: Literal["action"] = "action"
    action_type: ActionType = Field(alias="actionType")
    symbol: Optional[str] = None
    qty: Optional[PositiveNumber] = None
    qty_type: Optional[QtyType] = Field(
        default=None,
        validation_alias=AliasChoices("qtyType", "qty_type"),
        serialization_alias="qtyType",
    )
    params: Optional[Dict[str, Any]] = None
    next: Optional[str] = None

    def successors(self) -> List[str]:
        return [self.next] if self.next else []


Node = Annotated[Union[ConditionNode, ActionNode], Field(discriminator="type")]

# Successor keys kept as explicit nulls in the payload: a null `next` marks a terminal node
_SUCCESSOR_KEYS = {
    "condition": ("nextIfTrue", "nextIfFalse"),
    "action": ("next",),
}


class StrategyGraph(_WireModel):
    """
    A complete strategy graph.

    Attributes:
        symbol: Primary ticker the strategy trades
        entry_node: Id of the node evaluated first on every bar
        nodes: Condition and action nodes (order preserved for display)
        warnings: Repair notes and advisories accumulated so far
        suggested_edits: Improvement suggestions from the LLM
    """

    symbol: str = Field(min_length=1)
    entry_node: str = Field(alias="entryNode")
    nodes: List[Node] = Field(min_length=1)
    warnings: List[str] = Field(default_factory=list)
    suggested_edits: List[str] = Field(default_factory=list, alias="suggestedEdits")

    @field_validator("warnings", "suggested_edits", mode="before")
    @classmethod
    def keep_string_items(cls, v: Any) -> List[str]:
        """Metadata lists are advisory; anything that is not a string is dropped."""
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]

    @field_validator("nodes")
    @classmethod
    def validate_node_ids(cls, nodes: List[Union[ConditionNode, ActionNode]]) -> List[Union[ConditionNode, ActionNode]]:
        """Node ids must be identifier-like and unique."""
        seen = set()
        for node in nodes:
            if not validate_node_id(node.id):
                raise ValueError(f"invalid node id '{node.id}'")
            if node.id in seen:
                raise ValueError(f"duplicate node id '{node.id}'")
            seen.add(node.id)
        return nodes

    def node(self, node_id: str) -> Optional[Union[ConditionNode, ActionNode]]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def wire_nodes(self) -> List[Dict[str, Any]]:
        """Nodes as wire-format dicts (camelCase keys, unset optionals dropped)."""
        dumped = []
        for node in self.nodes:
            data = node.model_dump(mode="json", by_alias=True, exclude_none=True)
            for key in _SUCCESSOR_KEYS[node.type]:
                data.setdefault(key, None)
            dumped.append(data)
        return dumped

    def to_codegen_payload(self, timeframe: str) -> Dict[str, Any]:
        """
        Build the JSON document handed to the external code generator.

        Args:
            timeframe: Bar timeframe the backtest runs on.

        Returns:
            dict: {symbol, timeframe, entryNode, nodes}, without the
            warnings / suggestedEdits metadata.
        """
        return {
            "symbol": self.symbol,
            "timeframe": timeframe,
            "entryNode": self.entry_node,
            "nodes": self.wire_nodes(),
        }


def parse_strategy_graph(raw: Any) -> StrategyGraph:
    """
    Convert a raw graph dict into the typed IR.

    Raises:
        InvalidStrategyError: If the graph does not fit the typed model.
    """
    try:
        return StrategyGraph.model_validate(raw)
    except ValidationError as e:
        messages = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise InvalidStrategyError("Strategy graph does not match the typed model", messages) from e
