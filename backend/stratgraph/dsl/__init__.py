"""
PURPOSE: Strategy DSL catalog and LLM prompt contract.
"""

from .catalog import ArgSpec, Catalog, get_catalog, load_catalog
from .prompts import PROMPT_VERSION, render_system_prompt, render_user_prompt

__all__ = [
    "ArgSpec",
    "Catalog",
    "get_catalog",
    "load_catalog",
    "PROMPT_VERSION",
    "render_system_prompt",
    "render_user_prompt",
]
