from uuid import uuid4
from typing import Optional, List

from sqlalchemy import Boolean, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from stratgraph.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid4())


class StrategyGraphRecord(Base, TimestampMixin):
    """Persisted strategy graph with its latest validation outcome."""

    __tablename__ = "strategy_graphs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_query: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timeframe: Mapped[str] = mapped_column(String(4), nullable=False)
    entry_node: Mapped[str] = mapped_column(String(64), nullable=False)
    nodes: Mapped[List[dict]] = mapped_column(JSON, default=list)
    warnings: Mapped[List[str]] = mapped_column(JSON, default=list)
    suggested_edits: Mapped[List[str]] = mapped_column(JSON, default=list)
    is_valid: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    validation_errors: Mapped[List[str]] = mapped_column(JSON, default=list)
    llm_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    llm_prompt_version: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    def graph_dict(self) -> dict:
        """The stored graph in wire format: {symbol, entryNode, nodes}."""
        return {
            "symbol": self.symbol,
            "entryNode": self.entry_node,
            "nodes": list(self.nodes or []),
        }
