"""Text extraction from the success payloads of generateContent-style APIs.

Each known payload shape is matched in a fixed priority order. The last
variant (``OPAQUE``) always matches, so extraction never fails.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class ResponseShape(str, Enum):
    OUTPUT_TEXT = "output_text"
    CANDIDATE_STRING = "candidate_string"
    CANDIDATE_PART_LIST = "candidate_part_list"
    CANDIDATE_CONTENT_PARTS = "candidate_content_parts"
    CANDIDATE_OUTPUT = "candidate_output"
    CANDIDATE_MESSAGE = "candidate_message"
    TOP_LEVEL_OUTPUT = "top_level_output"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class ExtractedText:
    shape: ResponseShape
    text: str


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _join_parts(parts: list) -> str:
    """Join string parts and ``{"text": ...}`` parts; anything else is dumped."""
    out = []
    for part in parts:
        if isinstance(part, str):
            out.append(part)
        elif isinstance(part, dict) and isinstance(part.get("text"), str):
            out.append(part["text"])
        else:
            out.append(_dump(part))
    return "\n".join(out)


def _first_candidate(payload: dict) -> dict | None:
    candidates = payload.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return None


def _output_text(payload: dict) -> str | None:
    value = payload.get("output_text")
    return value if isinstance(value, str) and value else None


def _candidate_string(payload: dict) -> str | None:
    c = _first_candidate(payload)
    if c is not None and isinstance(c.get("content"), str):
        return c["content"]
    return None


def _candidate_part_list(payload: dict) -> str | None:
    c = _first_candidate(payload)
    if c is not None and isinstance(c.get("content"), list):
        return _join_parts(c["content"])
    return None


def _candidate_content_parts(payload: dict) -> str | None:
    c = _first_candidate(payload)
    if c is None:
        return None
    content = c.get("content")
    if isinstance(content, dict) and isinstance(content.get("parts"), list):
        return _join_parts(content["parts"])
    return None


def _candidate_output(payload: dict) -> str | None:
    c = _first_candidate(payload)
    if c is not None and isinstance(c.get("output"), list):
        return _join_parts(c["output"])
    return None


def _candidate_message(payload: dict) -> str | None:
    c = _first_candidate(payload)
    if c is None or not isinstance(c.get("message"), dict):
        return None
    content = c["message"].get("content")
    if isinstance(content, str) and content:
        return content
    if isinstance(content, list):
        return _join_parts(content)
    return None


def _top_level_output(payload: dict) -> str | None:
    output = payload.get("output")
    if (
        isinstance(output, list)
        and output
        and isinstance(output[0], dict)
        and isinstance(output[0].get("content"), list)
    ):
        return _join_parts(output[0]["content"])
    return None


_MATCHERS: list[tuple[ResponseShape, Callable[[dict], str | None]]] = [
    (ResponseShape.OUTPUT_TEXT, _output_text),
    (ResponseShape.CANDIDATE_STRING, _candidate_string),
    (ResponseShape.CANDIDATE_PART_LIST, _candidate_part_list),
    (ResponseShape.CANDIDATE_CONTENT_PARTS, _candidate_content_parts),
    (ResponseShape.CANDIDATE_OUTPUT, _candidate_output),
    (ResponseShape.CANDIDATE_MESSAGE, _candidate_message),
    (ResponseShape.TOP_LEVEL_OUTPUT, _top_level_output),
]


def extract_text(payload: Any) -> ExtractedText:
    """Return the generated text of ``payload`` and the shape it matched."""
    if isinstance(payload, dict):
        for shape, matcher in _MATCHERS:
            text = matcher(payload)
            if text is not None:
                return ExtractedText(shape=shape, text=text)
    return ExtractedText(shape=ResponseShape.OPAQUE, text=_dump(payload))
