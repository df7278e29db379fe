"""
PURPOSE: Diagnostics collected by the validation passes.

Every pass returns a Diagnostics collector instead of raising, so one call
reports every defect in the graph. Errors make the graph invalid; warnings
are advisory (financial lint, implicit branches, repair notes) and never
affect validity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorCategory(str, Enum):
    """
    Diagnostic taxonomy. FINANCIAL and REPAIR findings are always warnings;
    the others are errors unless a pass reports them as advisory.
    """

    STRUCTURAL = "structural"
    SCHEMA = "schema"
    REFERENCE = "reference"
    SEMANTIC = "semantic"
    FINANCIAL = "financial"
    REPAIR = "repair"


@dataclass(frozen=True)
class Diagnostic:
    """One finding, tagged with its category and owning node (if any)."""

    category: ErrorCategory
    message: str
    node_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "node_id": self.node_id,
        }


@dataclass
class Diagnostics:
    """Accumulator for errors and warnings produced by a validation pass."""

    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    def error(self, category: ErrorCategory, message: str, node_id: Optional[str] = None) -> None:
        self.errors.append(Diagnostic(category, message, node_id))

    def warn(self, category: ErrorCategory, message: str, node_id: Optional[str] = None) -> None:
        self.warnings.append(Diagnostic(category, message, node_id))

    def extend(self, other: "Diagnostics") -> "Diagnostics":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def error_messages(self) -> List[str]:
        return [d.message for d in self.errors]

    @property
    def warning_messages(self) -> List[str]:
        return [d.message for d in self.warnings]


def _unique(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    # Two passes may report the same finding (e.g. an implicit branch)
    seen = set()
    unique = []
    for diagnostic in diagnostics:
        if diagnostic.message in seen:
            continue
        seen.add(diagnostic.message)
        unique.append(diagnostic)
    return unique


@dataclass(frozen=True)
class ValidationResult:
    """
    PURPOSE: Outcome of validating one strategy graph.

    Serializes to the wire contract {isValid, errors, warnings} via to_dict().
    """

    error_diagnostics: tuple = ()
    warning_diagnostics: tuple = ()

    @classmethod
    def from_diagnostics(cls, diagnostics: Diagnostics) -> "ValidationResult":
        return cls(
            error_diagnostics=tuple(_unique(diagnostics.errors)),
            warning_diagnostics=tuple(_unique(diagnostics.warnings)),
        )

    @property
    def is_valid(self) -> bool:
        return not self.error_diagnostics

    @property
    def errors(self) -> List[str]:
        return [d.message for d in self.error_diagnostics]

    @property
    def warnings(self) -> List[str]:
        return [d.message for d in self.warning_diagnostics]

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self.error_diagnostics) + list(self.warning_diagnostics)

    def errors_in(self, category: ErrorCategory) -> List[str]:
        return [d.message for d in self.error_diagnostics if d.category == category]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
        }
