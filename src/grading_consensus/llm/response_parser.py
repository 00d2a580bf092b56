"""JSON extraction from markdown-fenced LLM responses.

LLMs asked for JSON often wrap it in markdown fences or surround it with
explanatory text.  This module recovers the JSON object when one exists so
callers can decide between the structured path and free-text extraction.
"""

import json
import re

# Leading/trailing fence markers, with an optional language tag.
_FENCE_MARKER_RE = re.compile(r"```(?:json|JSON)?[^\S\n]*\n?")

_JSON_BLOCK_RE = re.compile(r"```(?:json)?[^\S\n]*\n(.*?)\n```", re.DOTALL)


def strip_code_fences(response_text: str) -> str:
    """Remove every triple-backtick fence marker from *response_text*."""
    return _FENCE_MARKER_RE.sub("", response_text).strip()


def _load_object(candidate: str) -> dict | None:
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(response_text: str) -> dict | None:
    """Extract a JSON object from an LLM response.

    Handles:
    1. The whole response being a JSON object.
    2. The response wrapped in fence markers (stripped, then re-parsed).
    3. JSON inside `````json ... ````` blocks amid other text.
    4. A bare JSON object embedded in prose (first ``{`` to last ``}``).
    5. Returns ``None`` if no valid JSON object is found.

    Args:
        response_text: Raw text from LLM.

    Returns:
        Parsed dict, or ``None`` if no JSON found.
    """
    if not response_text or not response_text.strip():
        return None

    parsed = _load_object(response_text.strip())
    if parsed is not None:
        return parsed

    parsed = _load_object(strip_code_fences(response_text))
    if parsed is not None:
        return parsed

    for match in _JSON_BLOCK_RE.findall(response_text):
        parsed = _load_object(match)
        if parsed is not None:
            return parsed

    # Fallback: look for a bare JSON object in the text.
    first_brace = response_text.find("{")
    last_brace = response_text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return _load_object(response_text[first_brace : last_brace + 1])

    return None
