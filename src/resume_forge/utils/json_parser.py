"""Utility to pull a JSON object out of model output."""

from __future__ import annotations

import json


def extract_json(text: str) -> dict | list:
    """Extract JSON from a model response.

    Tries in order:
    1. ``json.loads`` on the whole text
    2. the body of a fenced code block
    3. the span from the first '{' to the last '}'
    4. the same span with missing closing brackets appended (truncated output)

    Raises ValueError when nothing parses.
    """
    text = (text or "").strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    unfenced = strip_code_fences(text)
    if unfenced != text:
        try:
            return json.loads(unfenced)
        except json.JSONDecodeError:
            pass

    result = _outermost_object(unfenced)
    if result is not None:
        return result

    result = _repair_truncated(unfenced)
    if result is not None:
        return result

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def strip_code_fences(text: str) -> str:
    """Return the content of the first ``` fenced block, or ``text`` unchanged."""
    start = text.find("```")
    if start == -1:
        return text
    body_start = text.find("\n", start)
    if body_start == -1:
        return text
    end = text.find("```", body_start)
    body = text[body_start + 1 : end] if end != -1 else text[body_start + 1 :]
    return body.strip()


def _outermost_object(text: str) -> dict | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        result = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return result if isinstance(result, dict) else None


def _repair_truncated(text: str) -> dict | None:
    """Close any brackets left open by a response cut off mid-object."""
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:]

    stack: list[str] = []
    in_string = False
    escaped = False
    last_safe = 0
    for i, ch in enumerate(candidate):
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
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            last_safe = i + 1
            if not stack:
                return None  # balanced object that already failed to parse
        elif ch == ",":
            last_safe = i

    if not stack:
        return None

    # Cut back to the last complete value, then close what is still open
    head = candidate[:last_safe].rstrip().rstrip(",")
    stack = []
    in_string = False
    escaped = False
    for ch in head:
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
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    repaired = head + "".join(reversed(stack))
    try:
        result = json.loads(repaired)
    except json.JSONDecodeError:
        return None
    return result if isinstance(result, dict) else None
