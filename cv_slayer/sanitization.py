"""
Turns an untrusted analysis payload into a bounded ``SafeResult``.

Every function here is total: whatever shape comes back from the analysis
service, the caller gets a value with known types and sizes, never an
exception. A ``SafeResult`` (or its dumped mapping) is accepted as input too,
and sanitizing it again returns an equal value.
"""

from __future__ import annotations

import html
import math
import re
import unicodedata
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .models import Improvement, Priority, SafeResult

SCORE_MIN, SCORE_MAX = 0, 100

FILE_NAME_MAX = 50
FILE_NAME_DEFAULT = "Unknown File"
ELLIPSIS = "..."

FEEDBACK_MAX_CHARS = 2000
FEEDBACK_MAX_LINES = 50

IMPROVEMENTS_MAX = 10
TITLE_MAX, DESCRIPTION_MAX, EXAMPLE_MAX = 100, 300, 200
TITLE_DEFAULT = "Improvement"

LIST_ITEMS_MAX = 8
LIST_ITEM_MAX = 150

_MARKUP_RE = re.compile(r"[<>]")
_PRIORITIES = {p.value: p for p in Priority}


def strip_markup(text: str) -> str:
    return _MARKUP_RE.sub("", text)


def truncate(text: str, limit: int, ellipsis: bool = False) -> str:
    if len(text) <= limit:
        return text
    if ellipsis:
        return text[: limit - len(ELLIPSIS)] + ELLIPSIS
    return text[:limit]


def clamp_score(value: Any, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        number = 0.0
    if math.isnan(number):
        number = 0.0
    number = max(float(low), min(float(high), number))
    # half-up rounding, not banker's
    return int(math.floor(number + 0.5))


def sanitize_text(value: Any, limit: int, fallback: str = "") -> str:
    if not isinstance(value, str):
        return fallback
    return truncate(strip_markup(value), limit)


def sanitize_file_name(value: Any) -> str:
    if not isinstance(value, str):
        return FILE_NAME_DEFAULT
    cleaned = strip_markup(value).strip()
    if not cleaned:
        return FILE_NAME_DEFAULT
    return truncate(cleaned, FILE_NAME_MAX, ellipsis=True)


def decode_entities(text: str) -> str:
    """Unescape HTML entities and drop angle brackets until nothing changes."""
    while True:
        decoded = strip_markup(html.unescape(text))
        if decoded == text:
            return decoded
        text = decoded


def sanitize_feedback(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        value = "\n".join(line for line in value if isinstance(line, str))
    if not isinstance(value, str):
        return ()
    text = decode_entities(value)[:FEEDBACK_MAX_CHARS]
    lines = [line for line in text.splitlines() if line.strip()]
    return tuple(lines[:FEEDBACK_MAX_LINES])


def sanitize_priority(value: Any) -> Priority:
    if isinstance(value, Priority):
        return value
    if isinstance(value, str) and value in _PRIORITIES:
        return _PRIORITIES[value]
    return Priority.MEDIUM


def sanitize_improvement(item: Mapping[str, Any]) -> Improvement:
    return Improvement(
        priority=sanitize_priority(item.get("priority")),
        title=sanitize_text(item.get("title"), TITLE_MAX, fallback=TITLE_DEFAULT),
        description=sanitize_text(item.get("description"), DESCRIPTION_MAX),
        example=sanitize_text(item.get("example"), EXAMPLE_MAX),
    )


def sanitize_improvements(value: Any) -> Tuple[Improvement, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    items: List[Improvement] = []
    for item in value:
        if isinstance(item, Improvement):
            item = item.model_dump(mode="json")
        if not isinstance(item, Mapping):
            continue
        items.append(sanitize_improvement(item))
        if len(items) == IMPROVEMENTS_MAX:
            break
    return tuple(items)


def _sanitize_list_item(item: str) -> str:
    return truncate(strip_markup(item).strip(), LIST_ITEM_MAX).rstrip()


def sanitize_string_list(value: Any, max_items: int = LIST_ITEMS_MAX) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    cleaned = (_sanitize_list_item(item) for item in value if isinstance(item, str))
    items = [item for item in cleaned if item]
    return tuple(items[:max_items])


def clean_text(value: Any, fallback: str = "") -> str:
    """Drop control and format characters from a display string."""
    if not isinstance(value, str):
        return fallback
    cleaned = "".join(ch for ch in value if not unicodedata.category(ch).startswith("C"))
    return cleaned.strip() or fallback


def _first_string(candidates: Iterable[Any]) -> Optional[str]:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def sanitize_result(payload: Any, fallback_file_name: Optional[str] = None) -> SafeResult:
    if isinstance(payload, SafeResult):
        payload = payload.model_dump(mode="json")
    if not isinstance(payload, Mapping):
        payload = {}

    metadata = payload.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}

    file_name = _first_string((
        payload.get("originalFileName"),
        payload.get("file_name"),
        payload.get("fileName"),
        metadata.get("originalFileName"),
        fallback_file_name,
    ))
    feedback = payload.get("roastFeedback")
    if feedback is None:
        feedback = payload.get("feedback")

    return SafeResult(
        score=clamp_score(payload.get("score")),
        file_name=sanitize_file_name(file_name),
        feedback=sanitize_feedback(feedback),
        improvements=sanitize_improvements(payload.get("improvements")),
        strengths=sanitize_string_list(payload.get("strengths")),
        weaknesses=sanitize_string_list(payload.get("weaknesses")),
    )
