"""
PURPOSE: Explicit context threaded through every validation pass.

Carries the catalog and the validator limits so no pass reaches for
process-global state.
"""

from dataclasses import dataclass
from typing import Optional

from stratgraph.config.constants import MAX_OPERAND_DEPTH
from stratgraph.config.settings import settings
from stratgraph.dsl.catalog import Catalog, get_catalog


@dataclass(frozen=True)
class ValidationContext:
    catalog: Catalog
    max_depth: int = MAX_OPERAND_DEPTH
    allow_cycles: bool = False

    @classmethod
    def from_settings(cls, catalog: Optional[Catalog] = None) -> "ValidationContext":
        """Build a context from the configured limits and the default catalog."""
        return cls(
            catalog=catalog or get_catalog(),
            max_depth=settings.MAX_OPERAND_DEPTH,
            allow_cycles=settings.ALLOW_CYCLES,
        )
