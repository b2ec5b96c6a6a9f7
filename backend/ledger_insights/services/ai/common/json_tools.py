"""Strict JSON decoding for model responses requested as ``application/json``."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n(?P<body>.*)\n```$", re.DOTALL | re.IGNORECASE)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite JSON literal {name!r} is not allowed")


def strip_code_fence(text: str) -> str:
    """Remove one surrounding markdown code fence, if present."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group("body").strip()
    return stripped


def decode_json_document(text: str) -> Any:
    """Decode *text* as exactly one JSON document.

    Unlike a lenient extractor this never hunts for a JSON fragment inside
    prose: the whole text (minus one optional code fence) must be valid JSON.
    ``NaN`` / ``Infinity`` literals are rejected.

    Raises ``ValueError`` (``json.JSONDecodeError`` is a subclass) on failure.
    """
    if text is None or not text.strip():
        raise ValueError("Empty JSON document")
    return json.loads(strip_code_fence(text), parse_constant=_reject_constant)
