"""Pull a JSON value out of LLM output."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _outermost(text: str) -> str | None:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start:end + 1]


def parse_llm_json(text: str | None) -> Any:
    """Unwrap a fenced block if present, parse, else parse the outermost {...} / [...].

    Raises ValueError when nothing parses.
    """
    if not text or not text.strip():
        raise ValueError("empty LLM response")
    body = text.strip()
    m = _FENCE_RE.search(body)
    if m:
        body = m.group(1).strip()
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass
    candidate = _outermost(body)
    if candidate is None:
        raise ValueError("no JSON object or array found in LLM response")
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON in LLM response: {e}") from e
