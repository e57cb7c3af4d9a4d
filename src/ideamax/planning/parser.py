"""Validation of raw completions for the plan and breakdown generation calls."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from ..errors import EmptyPlan, MalformedBreakdown
from .schemas import Breakdown

__all__ = ["parse_breakdown", "parse_plan"]

_FENCE_PATTERN = re.compile(r"^```(?:json)?[ \t]*\n(?P<body>.*)\n```$", re.IGNORECASE | re.DOTALL)


def parse_plan(text: str | None) -> str:
    """Accept the narrative plan as-is when it carries any content."""
    if text is None or not text.strip():
        raise EmptyPlan("Generated plan is empty.")
    return text


def parse_breakdown(text: str | None) -> Breakdown:
    """Parse and validate a breakdown document, all or nothing."""
    if text is None or not text.strip():
        raise MalformedBreakdown("Generated breakdown is empty.")

    document = _strip_code_fence(text.strip())
    try:
        data = json.loads(document, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as error:
        raise MalformedBreakdown(f"Breakdown is not valid JSON: {error.msg} at position {error.pos}") from error
    except _DuplicateKey as error:
        raise MalformedBreakdown(f"Breakdown repeats the key {error.key!r}.") from error

    if not isinstance(data, dict):
        raise MalformedBreakdown(f"Breakdown must be a JSON object, got {type(data).__name__}.")

    try:
        return Breakdown.model_validate(data)
    except ValidationError as error:
        raise MalformedBreakdown(_first_violation(error)) from error


class _DuplicateKey(ValueError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    """Build a JSON object, refusing repeated keys instead of keeping the last."""
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise _DuplicateKey(key)
        result[key] = value
    return result


def _strip_code_fence(payload: str) -> str:
    """Remove a single Markdown code fence wrapping the whole document."""
    match = _FENCE_PATTERN.match(payload)
    if not match:
        return payload
    return match.group("body").strip()


def _first_violation(error: ValidationError) -> str:
    details: list[dict[str, Any]] = error.errors()
    if not details:
        return "Breakdown failed validation."
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "document"
    return f"Breakdown failed validation at {location}: {first.get('msg', 'invalid value')}"
