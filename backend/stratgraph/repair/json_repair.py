"""
PURPOSE: Pull one JSON object out of free-form LLM text.

The model is asked for bare JSON but regularly wraps it in markdown
fences, adds prose around it, or emits JavaScript-flavoured literals
(trailing commas, // comments, single quotes, unquoted keys). Attempts, in
order: fenced block, direct parse, literal repair, brace-matched slice.

CALLED BY: strategy_builder/interpreter.py
"""

import json
import re
from typing import Any, Dict, Iterator, Optional

from stratgraph.core.exceptions import LLMResponseError
from stratgraph.utils.logger import get_logger

logger = get_logger("repair.json_repair")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_LINE_COMMENT_RE = re.compile(r"(?m)^\s*//[^\n]*$|(?<=[,{\[\s])//[^\n]*")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")


def repair_json_text(text: str) -> str:
    """Fix the common JavaScript-isms that make LLM output invalid JSON."""
    repaired = _LINE_COMMENT_RE.sub("", text)
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    if '"' not in repaired:
        # Only safe when the text has no double-quoted strings to collide with
        repaired = repaired.replace("'", '"')
    repaired = _UNQUOTED_KEY_RE.sub(r'\1"\2":', repaired)
    return repaired


def _outermost_object(text: str) -> Optional[str]:
    """Slice from the first '{' to its matching '}', ignoring braces inside strings."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _candidates(text: str) -> Iterator[str]:
    fence_match = _FENCE_RE.search(text)
    if fence_match:
        fenced = fence_match.group(1).strip()
        yield fenced
        yield repair_json_text(fenced)
    stripped = text.strip()
    yield stripped
    yield repair_json_text(stripped)
    sliced = _outermost_object(text)
    if sliced:
        yield sliced
        yield repair_json_text(sliced)


def extract_json_object(text: Any) -> Dict[str, Any]:
    """
    PURPOSE: Parse the first JSON object found in an LLM response.

    Args:
        text: Raw completion text.

    Returns:
        dict: The decoded object.

    Raises:
        LLMResponseError: When no candidate decodes to a JSON object.
    """
    if not isinstance(text, str) or not text.strip():
        raise LLMResponseError("LLM returned an empty response")

    for candidate in _candidates(text):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("json_parse_failed", text_preview=text[:120])
    raise LLMResponseError(
        "Failed to parse a JSON object from the LLM response",
        context={"preview": text[:200]},
    )
