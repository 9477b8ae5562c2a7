"""
Ordered extraction strategies for loosely shaped store data.

Result rows and content-tree nodes arrive with fields under several names
(camelCase analytics blobs, hyphenated Firebase keys, legacy columns). Where
the order in which those names are tried changes the answer, the order is
written down here once as a tuple of ``(name, fn)`` pairs and every call site
goes through :func:`first_match`.
"""

import json
import math
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Tuple

Strategy = Tuple[str, Callable[[Any], Any]]


def first_match(strategies: Sequence[Strategy], source: Any, default: Any = None) -> Any:
    """Return the first non-None value produced by the strategies, in order"""
    for _name, fn in strategies:
        value = fn(source)
        if value is not None:
            return value
    return default


# ==================== PRIMITIVES ====================

def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_object(value: Any) -> Optional[dict]:
    """Dict as-is, JSON text decoded, anything else None"""
    if not value:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def to_number(value: Any, default: float = 0) -> float:
    """Numeric coercion where missing or unparsable values count as the default"""
    if is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        return value
    if isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return default
        if not math.isfinite(number):
            return default
        return int(number) if number.is_integer() else number
    return default


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (matches the dashboards' rounding)"""
    return int(math.floor(value + 0.5))


def percent_from(score: float, total: float) -> int:
    if not total:
        return 0
    return round_half_up((score / total) * 100)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """datetime, ISO-8601 text or epoch milliseconds -> aware UTC datetime"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif is_number(value):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _key(*names: str) -> Callable[[Any], Any]:
    def lookup(source: Any) -> Any:
        if not isinstance(source, dict):
            return None
        for name in names:
            value = source.get(name)
            if value is not None:
                return value
        return None
    return lookup


def _numeric_key(name: str) -> Callable[[Any], Any]:
    def lookup(source: Any) -> Any:
        if not isinstance(source, dict):
            return None
        value = source.get(name)
        return value if is_number(value) else None
    return lookup


# ==================== SCORE PAIRS ====================

def _mcq_analytics_pair(row: dict) -> Optional[Tuple[float, float]]:
    analytics = to_object(row.get("analytics")) or {}
    mcq = analytics.get("mcq")
    if isinstance(mcq, dict) and is_number(mcq.get("score")):
        return mcq["score"], to_number(mcq.get("total"))
    return None


def _flat_marks_pair(row: dict) -> Tuple[float, float]:
    return to_number(row.get("marks_obtained")), to_number(row.get("total_marks"))


# Nested MCQ analytics first, flat columns second.
SCORE_PAIR_STRATEGIES: Tuple[Strategy, ...] = (
    ("analytics.mcq", _mcq_analytics_pair),
    ("marks_obtained/total_marks", _flat_marks_pair),
)


def score_pair(row: dict) -> Tuple[float, float]:
    return first_match(SCORE_PAIR_STRATEGIES, row, (0, 0))


def score_percent(row: dict) -> int:
    score, total = score_pair(row)
    return percent_from(score, total)


# ==================== CONTENT TITLES ====================

SUB_UNIT_TITLE_STRATEGIES: Tuple[Strategy, ...] = (
    ("sub-unit-name", _key("sub-unit-name")),
    ("title", _key("title")),
    ("name", _key("name")),
)

UNIT_NAME_STRATEGIES: Tuple[Strategy, ...] = (
    ("unit-name", _key("unit-name")),
    ("title", _key("title")),
    ("name", _key("name")),
)

QUESTION_TEXT_STRATEGIES: Tuple[Strategy, ...] = (
    ("question", _key("question")),
    ("title", _key("title")),
    ("description", _key("description")),
)


# ==================== ANALYTICS BLOB ====================

DURATION_STRATEGIES: Tuple[Strategy, ...] = (
    ("durationSeconds", _numeric_key("durationSeconds")),
    ("duration_seconds", _numeric_key("duration_seconds")),
    ("timeTakenSeconds", _numeric_key("timeTakenSeconds")),
    ("time_taken_seconds", _numeric_key("time_taken_seconds")),
)

FACE_WARNING_STRATEGIES: Tuple[Strategy, ...] = (
    ("faceWarnings", _numeric_key("faceWarnings")),
    ("face_warnings", _numeric_key("face_warnings")),
)

LOST_FOCUS_STRATEGIES: Tuple[Strategy, ...] = (
    ("lostFocusCount", _numeric_key("lostFocusCount")),
    ("lost_focus_count", _numeric_key("lost_focus_count")),
)

DISCONNECT_STRATEGIES: Tuple[Strategy, ...] = (
    ("internetDisconnects", _numeric_key("internetDisconnects")),
    ("internet_disconnects", _numeric_key("internet_disconnects")),
)

BLOCKED_SECONDS_STRATEGIES: Tuple[Strategy, ...] = (
    ("blockedSeconds", _numeric_key("blockedSeconds")),
    ("blocked_seconds", _numeric_key("blocked_seconds")),
)

TAB_SWITCH_STRATEGIES: Tuple[Strategy, ...] = (
    ("tabSwitchCount", _numeric_key("tabSwitchCount")),
    ("tab_switch_count", _numeric_key("tab_switch_count")),
)


def time_taken_seconds(analytics: Optional[dict]) -> Optional[int]:
    """Seconds between startedAt and lastUpdatedAt, None when either is missing"""
    if not analytics:
        return None
    start = parse_timestamp(analytics.get("startedAt"))
    end = parse_timestamp(analytics.get("lastUpdatedAt"))
    if start is None or end is None:
        return None
    return max(0, round_half_up((end - start).total_seconds()))


# ==================== SUBMITTED ANSWERS ====================

def _as_index(value: Any) -> Optional[int]:
    if is_number(value):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _answer_object(answer: Any) -> Optional[dict]:
    return to_object(answer)


SELECTED_INDEX_STRATEGIES: Tuple[Strategy, ...] = (
    ("raw index", _as_index),
    ("selectedOption", lambda a: _as_index((_answer_object(a) or {}).get("selectedOption"))),
    ("selected", lambda a: _as_index((_answer_object(a) or {}).get("selected"))),
    ("answer", lambda a: _as_index((_answer_object(a) or {}).get("answer"))),
)

SUBMITTED_CODE_STRATEGIES: Tuple[Strategy, ...] = (
    ("code", lambda a: (_answer_object(a) or {}).get("code")),
    ("source", lambda a: (_answer_object(a) or {}).get("source")),
    ("raw text", lambda a: a if isinstance(a, str) and _answer_object(a) is None else None),
)
