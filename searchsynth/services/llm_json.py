"""Decoding helpers for model output that is supposed to be JSON."""
from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*|\s*```")


def strip_code_fences(raw: str) -> str:
    """Remove markdown code-fence markers wrapping a model response."""
    if not raw:
        return ""
    return _FENCE_RE.sub("", raw).strip()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def decode_json_object(raw: str) -> dict[str, Any] | None:
    """Decode a JSON object from model output; None when there is none.

    Tries the fence-stripped text first, then the span between the first
    '{' and the last '}' to tolerate leading or trailing prose.
    """
    text = strip_code_fences(raw)
    if not text:
        return None

    parsed = _loads(text)
    if isinstance(parsed, dict):
        return parsed

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        parsed = _loads(text[start : end + 1])
        if isinstance(parsed, dict):
            return parsed
    return None


def decode_json_array(raw: str) -> list[Any] | None:
    """Decode a top-level JSON array from model output; None when there is none.

    Arrays nested inside an object do not count.
    """
    text = strip_code_fences(raw)
    if not text:
        return None

    parsed = _loads(text)
    if isinstance(parsed, list):
        return parsed

    start = text.find("[")
    end = text.rfind("]")
    brace = text.find("{")
    if 0 <= brace < start:
        return None
    if start >= 0 and end > start:
        parsed = _loads(text[start : end + 1])
        if isinstance(parsed, list):
            return parsed
    return None
