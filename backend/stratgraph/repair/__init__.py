"""
PURPOSE: Repair passes applied to LLM output before validation.
"""

from .json_repair import extract_json_object, repair_json_text
from .normalizer import RepairResult, normalize_graph, parse_exit_qty, repair_in_place

__all__ = [
    "extract_json_object",
    "repair_json_text",
    "RepairResult",
    "normalize_graph",
    "parse_exit_qty",
    "repair_in_place",
]
