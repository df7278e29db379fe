"""
PURPOSE: Release and contract versions reported by the API.

Three versions travel with every strategy: the package release (version.json),
the DSL catalog the graph was validated against, and the prompt contract the
LLM was given. build_info() reports all three so a stored graph can be
traced back to the rules that produced it.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from stratgraph.dsl.catalog import Catalog
from stratgraph.dsl.prompts import PROMPT_VERSION

VERSION_FILE: Path = Path(__file__).parent / "version.json"


@lru_cache(maxsize=1)
def get_version() -> Dict[str, Any]:
    """
    Release metadata from version.json (version, codename, updated_at, changelog).

    Raises:
        FileNotFoundError: If version.json is missing from the package.
        json.JSONDecodeError: If version.json is invalid JSON.
    """
    return json.loads(VERSION_FILE.read_text(encoding="utf-8"))


def build_info(catalog: Catalog) -> Dict[str, str]:
    """
    PURPOSE: Versions a client needs to interpret graphs from this server.

    Args:
        catalog: The DSL catalog in use.

    Returns:
        dict: {version, codename, dslVersion, promptVersion}
    """
    release = get_version()
    return {
        "version": release.get("version", "unknown"),
        "codename": release.get("codename", ""),
        "dslVersion": catalog.version,
        "promptVersion": PROMPT_VERSION,
    }
