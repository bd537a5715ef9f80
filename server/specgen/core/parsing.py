# specgen/core/parsing.py
"""
Turns the raw model text into a parsed JSON value.

Providers sometimes wrap the JSON in markdown fences (or add a sentence before
or after it) even when asked for a json_object response. Only those quirks are
handled here; anything else is a MalformedResponse.
"""

import json
import re
from typing import Any

from specgen.core.errors import MalformedResponse

REQUIRED_SECTIONS = ("metadata", "requirements", "architecture", "implementation", "testing", "deployment")

_OPENING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?\s*```\s*$")


def clean_markdown_response(text: str) -> str:
    cleaned = text.strip()
    cleaned = _OPENING_FENCE.sub("", cleaned)
    cleaned = _CLOSING_FENCE.sub("", cleaned)

    first = cleaned.find("{")
    if first > 0:
        cleaned = cleaned[first:]
    last = cleaned.rfind("}")
    if 0 <= last < len(cleaned) - 1:
        cleaned = cleaned[:last + 1]
    return cleaned.strip()


def normalize_response(raw: Any) -> Any:
    if not isinstance(raw, str):
        raise MalformedResponse(f"AI response is not text (got {type(raw).__name__})")
    cleaned = clean_markdown_response(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        snippet = cleaned.replace("\n", " ")
        snippet = (snippet[:200] + "...") if len(snippet) > 200 else snippet
        raise MalformedResponse(f"AI returned invalid JSON: {e.msg} (snippet: {snippet})") from e


def quick_validate(value: Any) -> bool:
    """Fast reject: all six top-level sections must be present."""
    if not isinstance(value, dict):
        return False
    return all(key in value for key in REQUIRED_SECTIONS)
