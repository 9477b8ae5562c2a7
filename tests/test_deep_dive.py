from datetime import datetime, timezone

from conftest import course_tree, result_row

from educode.analytics.deep_dive import (
    FALLBACK_DURATION_SECONDS,
    HIDDEN_PLACEHOLDER,
    assemble_attempt,
    attempt_timing,
    completion_stats,
    proctoring_metrics,
)
from educode.analytics.reconciliation import ResultRecord
from educode.content.tree import Modality, parse_coding_question, parse_mcq_question, parse_sub_unit

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def exam_sub_unit():
    raw = course_tree()["EduCode"]["Courses"]["C1"]["units"]["U1"]["sub-units"]["E1"]
    return parse_sub_unit("E1", "U1", raw), raw


def coding_questions():
    _, raw = exam_sub_unit()
    return {"c2": parse_coding_question("c2", raw["coding"]["c2"])}


def mcq_questions():
    _, raw = exam_sub_unit()
    return {qid: parse_mcq_question(qid, q) for qid, q in raw["mcq"].items()}


class TestCompletionStats:
    def test_cap_from_questions_to_show(self):
        sub_unit, _ = exam_sub_unit()
        stats = completion_stats(sub_unit, Modality.MCQ, 1)
        assert stats == {
            "total_available_questions": 2,
            "questions_to_show": 2,
            "attempted_questions": 1,
            "completion_percentage": 50,
        }

    def test_cap_falls_back_to_available(self):
        sub_unit, _ = exam_sub_unit()
        assert completion_stats(sub_unit, Modality.CODING, 1)["questions_to_show"] == 1

    def test_clamped_to_hundred(self):
        sub_unit = parse_sub_unit("X", "U1", {"mcq": {"a": {}, "b": {}, "c": {}}, "mcq-questions-to-show": 1})
        assert completion_stats(sub_unit, Modality.MCQ, 3)["completion_percentage"] == 100

    def test_missing_metadata_is_zero(self):
        assert completion_stats(None, Modality.MCQ, 4)["completion_percentage"] == 0


class TestCodingEnrichment:
    def _report(self):
        sub_unit, _ = exam_sub_unit()
        record = ResultRecord.from_row(result_row("st1", "E1", "coding", marks=10, total=20))
        submissions = [{"question_id": "c2", "answer": {"code": "print(3)"}, "status": "passed", "score": 10}]
        return assemble_attempt(record, submissions, sub_unit, coding_questions(), Modality.CODING, 1, now=NOW)

    def test_hidden_cases_are_redacted(self):
        entry = self._report()["submissions"][0]
        assert entry["hidden_test_cases"] == [
            {"input": HIDDEN_PLACEHOLDER, "expected_output": HIDDEN_PLACEHOLDER},
            {"input": HIDDEN_PLACEHOLDER, "expected_output": HIDDEN_PLACEHOLDER},
        ]
        assert "15" not in str(entry["hidden_test_cases"])

    def test_sample_cases_and_marks(self):
        entry = self._report()["submissions"][0]
        assert entry["sample_test_cases"] == [{"input": "1 2", "expected_output": "3"}]
        assert entry["total_question_marks"] == 20
        assert entry["submitted_code"] == "print(3)"
        assert entry["solution"].startswith("print")

    def test_verdict_uses_forty_percent(self):
        overview = self._report()["overview"]
        assert overview["percentage"] == 50
        assert overview["status"] == "Passed"


class TestMcqEnrichment:
    def test_selected_option_resolved_by_index(self):
        sub_unit, _ = exam_sub_unit()
        submissions = [
            {"question_id": "q3", "answer": "1"},
            {"question_id": "q4", "answer": {"selectedOption": 0}},
            {"question_id": "deleted", "answer": 0},
        ]
        report = assemble_attempt(None, submissions, sub_unit, mcq_questions(), Modality.MCQ, 1, now=NOW)
        entries = {e["question_id"]: e for e in report["submissions"]}

        assert set(entries) == {"q3", "q4"}
        assert entries["q3"]["selected_option_text"] == "4"
        assert entries["q3"]["is_correct"] is True
        assert entries["q4"]["selected_option_index"] == 0
        assert report["completion"]["completion_percentage"] == 100

    def test_out_of_range_selection(self):
        sub_unit, _ = exam_sub_unit()
        report = assemble_attempt(None, [{"question_id": "q3", "answer": 7}], sub_unit,
                                  mcq_questions(), Modality.MCQ, 1, now=NOW)
        entry = report["submissions"][0]
        assert entry["selected_option_text"] is None
        assert entry["is_correct"] is False


class TestAttemptMetrics:
    def test_failing_attempt(self):
        record = ResultRecord.from_row(result_row(
            "st1", "E1", "mcq", marks=38, total=100,
            analytics={"faceWarnings": 6, "lostFocusCount": 4, "internetDisconnects": 1},
        ))
        sub_unit, _ = exam_sub_unit()
        report = assemble_attempt(record, [], sub_unit, {}, Modality.MCQ, 1, now=NOW)

        assert report["overview"]["percentage"] == 38
        assert report["overview"]["status"] == "Failed"
        assert report["proctoring"]["network_health"] == "Unstable"
        assert len(report["suggestions"]) == 3

    def test_proctoring_defaults(self):
        metrics = proctoring_metrics({})
        assert metrics == {
            "face_warnings": 0,
            "lost_focus_count": 0,
            "internet_disconnects": 0,
            "blocked_seconds": 0,
            "tab_switch_count": 0,
            "network_health": "Stable",
        }

    def test_timing_fallback_ends_at_submission(self):
        record = ResultRecord.from_row(result_row("st1", "E1", "mcq"))
        timing = attempt_timing(record, now=NOW)
        assert timing["duration_seconds"] == FALLBACK_DURATION_SECONDS
        assert timing["end_time"] == "2024-05-01T10:00:00+00:00"
        assert timing["start_time"] == "2024-05-01T09:15:00+00:00"

    def test_timing_explicit_duration_and_unsubmitted(self):
        record = ResultRecord.from_row(result_row("st1", "E1", "mcq", submitted=False,
                                                  analytics={"durationSeconds": 600}))
        timing = attempt_timing(record, now=NOW)
        assert timing["duration_seconds"] == 600
        assert timing["end_time"] == NOW.isoformat()

    def test_missing_metadata_keeps_submissions_unenriched(self):
        report = assemble_attempt(None, [{"question_id": "q3", "answer": 1}], None, {}, Modality.MCQ, 2, now=NOW)
        assert report["completion"]["questions_to_show"] == 0
        assert report["submissions"] == [{
            "question_id": "q3", "status": None, "score": None, "question_resolved": False, "answer": 1,
        }]
        assert report["debug_configs"] == {"start_config": None, "end_config": None}

    def test_missing_metadata_drops_rows_tagged_with_other_modality(self):
        submissions = [
            {"question_id": "c2", "answer": "print(3)", "result_type": "coding"},
            {"question_id": "q3", "answer": 0, "result_type": "mcq"},
            {"question_id": "q4", "answer": 1},
        ]
        report = assemble_attempt(None, submissions, None, {}, Modality.MCQ, 1, now=NOW)
        assert [e["question_id"] for e in report["submissions"]] == ["q3", "q4"]
        assert all("selected_option_index" not in e for e in report["submissions"])

    def test_unloadable_question_is_not_read_as_requested_modality(self):
        sub_unit, _ = exam_sub_unit()
        report = assemble_attempt(None, [{"question_id": "c2", "answer": "print(3)"}], sub_unit,
                                  {}, Modality.CODING, 1, now=NOW)
        [entry] = report["submissions"]
        assert entry["question_resolved"] is False
        assert entry["answer"] == "print(3)"
        assert "hidden_test_cases" not in entry
