"""
Attempt deep-dive assembler

Pure assembly of the single-attempt report. The service fetches the result row,
the submission rows, the sub-unit metadata and the question documents; this
module turns them into one response object.

Missing content metadata is not an error here: counts fall back to zero and
submissions are returned without question content.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from educode.analytics.extraction import (
    BLOCKED_SECONDS_STRATEGIES,
    DISCONNECT_STRATEGIES,
    DURATION_STRATEGIES,
    FACE_WARNING_STRATEGIES,
    LOST_FOCUS_STRATEGIES,
    SELECTED_INDEX_STRATEGIES,
    SUBMITTED_CODE_STRATEGIES,
    TAB_SWITCH_STRATEGIES,
    first_match,
    percent_from,
    round_half_up,
)
from educode.analytics.reconciliation import ResultRecord
from educode.analytics.trends import ATTEMPT_PASS_PERCENT, attempt_suggestions
from educode.content.tree import CodingQuestion, McqQuestion, Modality, SubUnitNode

HIDDEN_PLACEHOLDER = "Hidden"
MARKS_PER_HIDDEN_CASE = 10
FALLBACK_DURATION_SECONDS = 2700

Question = Union[McqQuestion, CodingQuestion]


def valid_question_ids(sub_unit: Optional[SubUnitNode], modality: Modality) -> Optional[set]:
    """Question ids of the modality map, None when the sub-unit is unknown"""
    if sub_unit is None:
        return None
    return set(sub_unit.question_ids(modality))


def _tagged_modality(submission: dict) -> Optional[str]:
    tag = submission.get("result_type") or submission.get("question_type")
    return str(tag) if tag is not None else None


def filter_submissions(submissions: List[dict], valid_ids: Optional[set],
                       modality: Optional[Modality] = None) -> List[dict]:
    """
    Drop submissions for questions no longer in the content tree

    Without a question map (valid_ids is None) rows are kept unless they are
    tagged with a different modality.
    """
    if valid_ids is None:
        return [
            s for s in submissions
            if modality is None or _tagged_modality(s) in (None, modality.value)
        ]
    return [s for s in submissions if str(s.get("question_id")) in valid_ids]


def completion_stats(sub_unit: Optional[SubUnitNode], modality: Modality, attempted: int) -> Dict[str, int]:
    available = len(sub_unit.question_ids(modality)) if sub_unit else 0
    to_show = sub_unit.questions_to_show(modality) if sub_unit else 0
    percentage = min(100, round_half_up(100 * attempted / to_show)) if to_show else 0
    return {
        "total_available_questions": available,
        "questions_to_show": to_show,
        "attempted_questions": attempted,
        "completion_percentage": percentage,
    }


# ==================== ENRICHMENT ====================

def _submission_base(submission: dict) -> Dict[str, Any]:
    return {
        "question_id": submission.get("question_id"),
        "status": submission.get("status"),
        "score": submission.get("score"),
    }


def unresolved_submission(submission: dict) -> Dict[str, Any]:
    """Question content could not be loaded; the answer is passed through as stored"""
    entry = _submission_base(submission)
    entry.update({"question_resolved": False, "answer": submission.get("answer")})
    return entry


def enrich_coding(submission: dict, question: CodingQuestion) -> Dict[str, Any]:
    entry = _submission_base(submission)
    entry["type"] = Modality.CODING.value
    entry["submitted_code"] = first_match(SUBMITTED_CODE_STRATEGIES, submission.get("answer"))

    hidden_count = len(question.hidden_test_cases)
    entry.update({
        "title": question.title,
        "description": question.description,
        "sample_test_cases": [
            {"input": case.input, "expected_output": case.expected_output}
            for case in question.sample_test_cases
        ],
        # Only the count of hidden cases leaves the server.
        "hidden_test_cases": [
            {"input": HIDDEN_PLACEHOLDER, "expected_output": HIDDEN_PLACEHOLDER}
            for _ in question.hidden_test_cases
        ],
        "hidden_test_case_count": hidden_count,
        "total_question_marks": hidden_count * MARKS_PER_HIDDEN_CASE,
        "solution": question.solution,
    })
    return entry


def enrich_mcq(submission: dict, question: McqQuestion) -> Dict[str, Any]:
    entry = _submission_base(submission)
    entry["type"] = Modality.MCQ.value
    selected_index = first_match(SELECTED_INDEX_STRATEGIES, submission.get("answer"))
    entry["selected_option_index"] = selected_index

    option = question.option_at(selected_index)
    entry.update({
        "question": question.text,
        "options": [o.text for o in question.options],
        "selected_option_text": option.text if option else None,
        "is_correct": bool(option and option.is_correct),
    })
    return entry


def enrich_submission(submission: dict, modality: Modality, questions: Dict[str, Question]) -> Dict[str, Any]:
    question = questions.get(str(submission.get("question_id")))
    if modality == Modality.CODING and isinstance(question, CodingQuestion):
        return enrich_coding(submission, question)
    if modality == Modality.MCQ and isinstance(question, McqQuestion):
        return enrich_mcq(submission, question)
    return unresolved_submission(submission)


# ==================== ATTEMPT METRICS ====================

def proctoring_metrics(analytics: Dict[str, Any]) -> Dict[str, Any]:
    disconnects = first_match(DISCONNECT_STRATEGIES, analytics, 0)
    return {
        "face_warnings": first_match(FACE_WARNING_STRATEGIES, analytics, 0),
        "lost_focus_count": first_match(LOST_FOCUS_STRATEGIES, analytics, 0),
        "internet_disconnects": disconnects,
        "blocked_seconds": first_match(BLOCKED_SECONDS_STRATEGIES, analytics, 0),
        "tab_switch_count": first_match(TAB_SWITCH_STRATEGIES, analytics, 0),
        "network_health": "Stable" if disconnects == 0 else "Unstable",
    }


def attempt_timing(record: Optional[ResultRecord], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Wall-clock window of the attempt

    Explicit duration fields win; otherwise a fixed exam length is assumed and
    the window ends at submission time (or now when never submitted).
    """
    analytics = record.analytics if record else {}
    duration = first_match(DURATION_STRATEGIES, analytics, FALLBACK_DURATION_SECONDS)
    end = (record.submitted_at if record else None) or now or datetime.now(timezone.utc)
    start = end - timedelta(seconds=duration)
    return {
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "duration_seconds": duration,
    }


def assemble_attempt(
    record: Optional[ResultRecord],
    submissions: List[dict],
    sub_unit: Optional[SubUnitNode],
    questions: Dict[str, Question],
    modality: Modality,
    attempt: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the deep-dive report for one attempt

    Args:
        record: Parsed result row, None when only submissions exist
        submissions: Raw submission rows for the attempt
        sub_unit: Sub-unit metadata, None when absent from the content tree
        questions: Question documents keyed by question id
        modality: mcq or coding
        attempt: Attempt number

    Returns:
        dict with overview, completion, proctoring, submissions,
        suggestions and debug_configs
    """
    kept = filter_submissions(submissions, valid_question_ids(sub_unit, modality), modality)

    marks_obtained = record.marks_obtained if record else 0
    total_marks = record.total_marks if record else 0
    percent = percent_from(marks_obtained, total_marks)
    passed = percent >= ATTEMPT_PASS_PERCENT

    proctoring = proctoring_metrics(record.analytics if record else {})

    overview = {
        "attempt": attempt,
        "result_type": modality.value,
        "sub_unit_title": sub_unit.title if sub_unit else None,
        "marks_obtained": marks_obtained,
        "total_marks": total_marks,
        "percentage": percent,
        "status": "Passed" if passed else "Failed",
        "submitted": bool(record and record.submitted_at),
        "submit_reason": (record.analytics if record else {}).get("submitReason"),
    }
    overview.update(attempt_timing(record, now))

    return {
        "overview": overview,
        "completion": completion_stats(sub_unit, modality, len(kept)),
        "proctoring": proctoring,
        "submissions": [enrich_submission(s, modality, questions) for s in kept],
        "suggestions": attempt_suggestions(
            proctoring["face_warnings"], proctoring["lost_focus_count"], passed
        ),
        "debug_configs": {
            "start_config": record.start_config if record else None,
            "end_config": record.end_config if record else None,
        },
    }
