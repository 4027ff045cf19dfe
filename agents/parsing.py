"""Helpers for pulling JSON objects out of free-form LLM replies."""

from __future__ import annotations

import json
import re
from typing import Any

from agents.errors import ValidationError

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def extract_json(text: str) -> str:
    """Return the most plausible JSON object embedded in *text*.

    Tries, in order: a fenced code block, the whole trimmed string, and the
    first balanced ``{...}`` span (string-literal aware).
    """
    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()

    trimmed = text.strip()
    if trimmed.startswith("{") and trimmed.endswith("}"):
        return trimmed

    start = -1
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(trimmed):
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
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start >= 0:
                return trimmed[start : i + 1]

    return trimmed


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse *text* as a JSON object, repairing common wrappers once."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(extract_json(text))
        except json.JSONDecodeError as exc:
            raise ValidationError("LLM response was not valid JSON.") from exc

    if not isinstance(parsed, dict):
        raise ValidationError("LLM response was not a JSON object.")
    return parsed
