"""Parsing of structured classifier responses."""

import json
import re
from typing import Any, List, Optional

from ..models import ClassificationResult

_FENCE_PATTERN = re.compile(r"```[ \t]*[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)


class ResponseParseError(ValueError):
    """Raised when a classifier response cannot be turned into results."""
    pass


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the text itself."""
    match = _FENCE_PATTERN.search(text or "")
    if match:
        return match.group(1).strip()
    return (text or "").strip()


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
    return None


def _coerce_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    return min(1.0, max(0.0, confidence))


def parse_item(item: Any) -> Optional[ClassificationResult]:
    """
    Convert one response object into a result.

    Args:
        item: Decoded JSON value for a single headline

    Returns:
        ClassificationResult, or None if the item is unusable
    """
    if not isinstance(item, dict):
        return None

    is_clickbait = _coerce_bool(item.get("isClickbait"))
    if is_clickbait is None:
        return None

    summary = item.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = None

    return ClassificationResult(
        is_clickbait=is_clickbait,
        confidence=_coerce_confidence(item.get("confidence")),
        reason=str(item.get("reason") or ""),
        summary=summary.strip() if summary else None,
        source="ai"
    )


def parse_classification_payload(text: str) -> List[Optional[ClassificationResult]]:
    """
    Parse a classifier reply into positional results.

    The reply may wrap its JSON in a fenced code block. The payload is either
    a JSON array or an object holding the array under "results".

    Args:
        text: Raw reply text

    Returns:
        One entry per item in the payload; None where an item is unusable

    Raises:
        ResponseParseError: If the reply is not a usable JSON array
    """
    body = strip_code_fence(text)
    if not body:
        raise ResponseParseError("Empty classifier response")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in classifier response: {e}")

    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        payload = payload["results"]

    if not isinstance(payload, list):
        raise ResponseParseError(
            f"Expected a JSON array of results, got {type(payload).__name__}"
        )

    return [parse_item(item) for item in payload]
