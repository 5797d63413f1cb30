"""Lenient JSON extraction for model replies.

Models wrap JSON in prose or markdown fences, or return a bare array. Every
successful parse is returned as a dict; arrays come back as ``{"items": [...]}``.
"""

import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)


def parse_json_response(text: str) -> Optional[dict[str, Any]]:
    """Parse JSON from a model reply.

    Tries, in order: the whole reply, each fenced code block, the first
    balanced ``{...}`` span and the first balanced ``[...]`` span.

    Returns:
        Parsed JSON dict, or None if nothing parses.
    """
    if not text or not text.strip():
        return None

    text = text.strip()
    candidates = [text]
    candidates.extend(match.group(1).strip() for match in _FENCE_RE.finditer(text))
    for opener, closer in (("{", "}"), ("[", "]")):
        span = _balanced_span(text, opener, closer)
        if span is not None:
            candidates.append(span)

    for candidate in candidates:
        result = _loads(candidate)
        if result is not None:
            return result
    return None


def _loads(text: str) -> Optional[dict[str, Any]]:
    try:
        result = json.loads(text)
    except json.JSONDecodeError:
        return None
    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        return {"items": result}
    return None


def _balanced_span(text: str, opener: str, closer: str) -> Optional[str]:
    """First substring starting at ``opener`` whose brackets balance.

    Brackets inside JSON strings are ignored.
    """
    start = text.find(opener)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None
