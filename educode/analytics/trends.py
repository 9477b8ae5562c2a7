"""
Trend & summary aggregation for the analytics dashboard

Works on raw result rows (dicts as returned by the record store). Scores are
read through SCORE_PAIR_STRATEGIES so the nested mcq analytics score always
wins over the flat marks columns.
"""

from typing import Any, Dict, Iterable, List, Optional

from educode.analytics.extraction import (
    DISCONNECT_STRATEGIES,
    FACE_WARNING_STRATEGIES,
    LOST_FOCUS_STRATEGIES,
    first_match,
    percent_from,
    round_half_up,
    score_percent,
    time_taken_seconds,
    to_number,
    to_object,
)

# Latest-attempt pass/fail tally on the dashboard summary
COHORT_PASS_PERCENT = 50
# Single-attempt verdict in the deep dive and the admin section matrix
ATTEMPT_PASS_PERCENT = 40

FACE_WARNING_LIMIT = 10
LOST_FOCUS_LIMIT = 3
DISCONNECT_LIMIT = 0.5
TIME_TAKEN_LIMIT_SECONDS = 900

ATTEMPT_FACE_WARNING_LIMIT = 5
ATTEMPT_LOST_FOCUS_LIMIT = 3


def _attempt(row: dict) -> int:
    return int(to_number(row.get("attempt_count")))


def compute_avg_pct_by_attempt(rows: Iterable[dict]) -> Dict[str, List[int]]:
    """
    Mean score percentage per attempt number

    Returns:
        {"attempts": [1, 2, ...], "avgPct": [...]} with attempts ascending
    """
    buckets: Dict[int, List[int]] = {}
    for row in rows:
        buckets.setdefault(_attempt(row), []).append(score_percent(row))

    attempts = sorted(buckets)
    return {
        "attempts": attempts,
        "avgPct": [round_half_up(sum(buckets[a]) / len(buckets[a])) for a in attempts],
    }


def latest_per_student(rows: Iterable[dict]) -> List[dict]:
    """Highest attempt_count row per student, first seen kept on ties"""
    latest: Dict[Any, dict] = {}
    for row in rows:
        current = latest.get(row.get("student_id"))
        if current is None or _attempt(current) < _attempt(row):
            latest[row.get("student_id")] = row
    return list(latest.values())


def pass_fail_tally(rows: Iterable[dict]) -> Dict[str, int]:
    percents = [score_percent(row) for row in rows]
    passed = sum(1 for pct in percents if pct >= COHORT_PASS_PERCENT)
    return {"pass": passed, "fail": len(percents) - passed}


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def behaviour_averages(rows: Iterable[dict]) -> Dict[str, float]:
    """
    Means of proctoring signals, each over the rows that actually carry it
    """
    blobs = [to_object(row.get("analytics")) or {} for row in rows]
    times = [t for t in (time_taken_seconds(blob) for blob in blobs) if t is not None]
    face = [v for v in (first_match(FACE_WARNING_STRATEGIES, blob) for blob in blobs) if v is not None]
    lost = [v for v in (first_match(LOST_FOCUS_STRATEGIES, blob) for blob in blobs) if v is not None]
    disc = [v for v in (first_match(DISCONNECT_STRATEGIES, blob) for blob in blobs) if v is not None]

    return {
        "time": _mean(times),
        "faceWarnings": _mean(face),
        "lostFocus": _mean(lost),
        "disconnects": _mean(disc),
    }


def cohort_suggestions(averages: Dict[str, float]) -> List[str]:
    improvements = []
    if averages.get("faceWarnings", 0) > FACE_WARNING_LIMIT:
        improvements.append("High face warnings detected. Advise better lighting.")
    if averages.get("lostFocus", 0) > LOST_FOCUS_LIMIT:
        improvements.append("Frequent focus changes detected.")
    if averages.get("disconnects", 0) > DISCONNECT_LIMIT:
        improvements.append("Connectivity issues observed.")
    if averages.get("time", 0) > TIME_TAKEN_LIMIT_SECONDS:
        improvements.append("Students are taking too long per attempt.")
    return improvements


def attempt_suggestions(face_warnings: float, lost_focus: float, passed: bool) -> List[str]:
    """Advice for a single attempt in the deep dive"""
    suggestions = []
    if face_warnings > ATTEMPT_FACE_WARNING_LIMIT:
        suggestions.append("Ensure your face is clearly visible with adequate lighting.")
    if lost_focus > ATTEMPT_LOST_FOCUS_LIMIT:
        suggestions.append("Avoid switching tabs or windows during the assessment.")
    if not passed:
        suggestions.append("Revise the topic and attempt the assessment again.")
    return suggestions


def build_summary(mcq_rows: List[dict], coding_rows: List[dict]) -> Dict[str, Any]:
    latest_mcq = latest_per_student(mcq_rows)
    latest_coding = latest_per_student(coding_rows)
    averages = behaviour_averages(latest_mcq + latest_coding)

    return {
        "mcq": pass_fail_tally(latest_mcq),
        "coding": pass_fail_tally(latest_coding),
        "averages": averages,
        "trends": {
            "mcq": compute_avg_pct_by_attempt(mcq_rows),
            "coding": compute_avg_pct_by_attempt(coding_rows),
        },
        "improvements": cohort_suggestions(averages),
    }

# ==================== TABLES ====================

def format_marks(row: Optional[dict]) -> str:
    if row is None:
        return "N/A"
    return f"{_plain(row.get('marks_obtained'))}/{_plain(row.get('total_marks'))}"


def _plain(value: Any) -> Any:
    number = to_number(value, default=None)
    if number is None:
        return value
    return int(number) if float(number).is_integer() else number


def _latest_by_student(rows: List[dict]) -> Dict[Any, dict]:
    return {row.get("student_id"): row for row in latest_per_student(rows)}


def table_rows(students: List[dict], mcq_rows: List[dict], coding_rows: List[dict], course_name: str) -> List[dict]:
    """One row per student with their latest mcq and coding result"""
    latest_mcq = _latest_by_student(mcq_rows)
    latest_coding = _latest_by_student(coding_rows)

    table = []
    for student in students:
        mcq = latest_mcq.get(student.get("student_id"))
        coding = latest_coding.get(student.get("student_id"))
        analytics = to_object((mcq or coding or {}).get("analytics"))
        table.append({
            "student_id": student.get("student_id"),
            "uni_reg_id": student.get("uni_reg_id"),
            "student_name": student.get("student_name"),
            "section": student.get("section"),
            "course_name": course_name,
            "mcq_marks": format_marks(mcq),
            "coding_marks": format_marks(coding),
            "analytics": analytics,
            "submit_reason": (analytics or {}).get("submitReason"),
        })
    return table


def attempt_rows(students: List[dict], rows: List[dict]) -> List[dict]:
    """Flat per-attempt listing used by the spreadsheet export"""
    by_id = {student.get("student_id"): student for student in students}
    listing = []
    for row in sorted(rows, key=lambda r: (str(r.get("student_id")), _attempt(r))):
        student = by_id.get(row.get("student_id"), {})
        analytics = to_object(row.get("analytics")) or {}
        listing.append({
            "RegID": student.get("uni_reg_id"),
            "Name": student.get("student_name"),
            "Type": row.get("result_type"),
            "Attempt": _attempt(row),
            "Marks": format_marks(row),
            "Percent": score_percent(row),
            "TimeTakenSeconds": time_taken_seconds(analytics),
            "FaceWarnings": first_match(FACE_WARNING_STRATEGIES, analytics, 0),
            "LostFocus": first_match(LOST_FOCUS_STRATEGIES, analytics, 0),
            "Disconnects": first_match(DISCONNECT_STRATEGIES, analytics, 0),
            "SubmitReason": analytics.get("submitReason"),
        })
    return listing


def history_trend(rows: List[dict]) -> Dict[str, Any]:
    """
    Attempt list and per-row percentage trend for one student

    The trend uses the flat marks columns only.
    """
    ordered = sorted(rows, key=_attempt)
    return {
        "results": rows,
        "attempts": sorted({_attempt(row) for row in rows}),
        "pctTrend": [
            percent_from(to_number(row.get("marks_obtained")), to_number(row.get("total_marks")))
            for row in ordered
        ],
    }
