"""
Analytics orchestration
Fetches from the record and content stores, then hands the data to the pure
analytics functions. Independent fetches run concurrently with asyncio.gather.
"""

import asyncio
import logging
from typing import Any, Dict, List

from educode.analytics.blueprint import BlueprintItem, build_blueprint, build_unit_blueprint
from educode.analytics.deep_dive import assemble_attempt, filter_submissions, valid_question_ids
from educode.analytics.extraction import to_number
from educode.analytics.progress import cohort_average, exam_progress, student_completion
from educode.analytics.reconciliation import ResultIndex, ResultRecord
from educode.analytics.trends import build_summary, history_trend, table_rows
from educode.content.tree import Modality, SubType
from educode.errors import (
    AttemptNotFound,
    ContentNotFound,
    NotFound,
    StudentNotFound,
    ValidationError,
)
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

logger = logging.getLogger(__name__)


# ==================== HELPERS ====================

async def blueprint_or_empty(content: ContentStore, course_id: str, sub_type: str) -> List[BlueprintItem]:
    """Course blueprint for a subtype; a course absent from the tree has no items"""
    try:
        tree = await content.fetch_course_tree(course_id)
    except ContentNotFound as e:
        logger.info(f"[ANALYTICS] No content for course {course_id}: {e.path}")
        return []
    return build_blueprint(tree, sub_type)


def parse_modality(value: Any) -> Modality:
    try:
        return Modality(str(value))
    except ValueError:
        raise ValidationError("resultType must be one of: mcq, coding", extra={"resultType": value})


def parse_attempt(value: Any) -> int:
    number = to_number(value, default=None)
    if number is None or int(number) != number:
        raise ValidationError("attempt must be an integer", extra={"attempt": value})
    return int(number)


async def resolve_student(records: RecordStore, uni_reg_id: str) -> dict:
    student = await records.student_by_reg_id(uni_reg_id)
    if not student:
        raise StudentNotFound(uni_reg_id)
    return student


def _student_ids(students: List[dict]) -> List[str]:
    return [s["student_id"] for s in students]


# ==================== TEACHER ANALYTICS ====================

async def unit_completion(records: RecordStore, content: ContentStore,
                          student_id: str, course_id: str, unit_id: str) -> Dict[str, Any]:
    """Completion of one unit for one student, every sub-unit subtype included"""
    unit = await content.fetch_unit(course_id, unit_id)
    blueprint = build_unit_blueprint(unit)

    rows = await records.fetch_submitted_results([student_id], course_id, unit_id=unit_id)
    progress = student_completion(blueprint, ResultIndex.build(rows), student_id)

    return {
        "unit_id": unit_id,
        "unit_name": unit.name,
        "total_sub_units": len(unit.sub_units),
        "assessable_sub_units": len(blueprint),
        "overall_unit_completion": progress.completion_percentage,
        "sub_unit_breakdown": [
            {
                "sub_unit_id": item.sub_unit_id,
                "sub_unit_title": item.sub_unit_title,
                "progress_percentage": item.progress_percentage,
                "details": {
                    "has_mcq": item.has_mcq,
                    "mcq_submitted": item.mcq_submitted,
                    "has_coding": item.has_coding,
                    "coding_submitted": item.coding_submitted,
                },
            }
            for item in progress.items
        ],
    }


async def section_completion(records: RecordStore, content: ContentStore,
                             section_name: str, course_id: str, university_id: str) -> Dict[str, Any]:
    """Practice completion of a section; the average is the mean of student percentages"""
    students, blueprint = await asyncio.gather(
        records.students_in_section(section_name, university_id=university_id),
        blueprint_or_empty(content, course_id, SubType.PRACTICE.value),
    )

    if not students:
        return {"section_name": section_name, "total_students": 0, "section_overall_completion": 0}

    if not blueprint:
        return {
            "section_name": section_name,
            "message": "No practice content found in this course.",
            "section_overall_completion": 0,
        }

    rows = await records.fetch_submitted_results(_student_ids(students), course_id)
    index = ResultIndex.build(rows)

    performance = []
    for student in students:
        progress = student_completion(blueprint, index, student["student_id"])
        performance.append({
            "student_name": student.get("student_name"),
            "progress": progress.completion_percentage,
        })

    return {
        "section_name": section_name,
        "course_id": course_id,
        "total_students": len(students),
        "total_practice_sub_units": len(blueprint),
        "section_overall_completion": cohort_average([p["progress"] for p in performance]),
        "student_performance": performance,
    }


async def _exam_report(records: RecordStore, content: ContentStore, students: List[dict],
                       section_name: str, course_id: str) -> Dict[str, Any]:
    blueprint = await blueprint_or_empty(content, course_id, SubType.EXAM.value)
    if not blueprint:
        return {"section_name": section_name, "message": "No exams found in this course.", "students": []}

    rows = await records.fetch_submitted_results(_student_ids(students), course_id)
    index = ResultIndex.build(rows)

    report = []
    for student in students:
        progress = exam_progress(blueprint, index, student["student_id"])
        report.append({
            "student_name": student.get("student_name"),
            "uni_reg_id": student.get("uni_reg_id"),
            "exam_completion_percentage": progress.completion_percentage,
            "total_marks": progress.total_marks,
            "marks_breakdown": {
                "coding_marks": progress.coding_marks,
                "mcq_marks": progress.mcq_marks,
            },
            "debug_configs": progress.debug_configs.as_response(),
        })

    return {
        "section_name": section_name,
        "total_students": len(students),
        "total_exams_in_course": len(blueprint),
        "students": report,
    }


async def section_exam_progress(records: RecordStore, content: ContentStore,
                                course_id: str, section_name: str) -> Dict[str, Any]:
    """Exam progress for a section of the batch registered to the course"""
    batch = await records.batch_for_course(course_id)
    if not batch:
        raise NotFound("No batch found for this course.", extra={"course_id": course_id})

    students = await records.students_in_section(section_name, batch_id=batch["batch_id"])
    if not students:
        return {"section_name": section_name, "message": "No students found in this section.", "students": []}

    return await _exam_report(records, content, students, section_name, course_id)


async def university_exam_progress(records: RecordStore, content: ContentStore, course_id: str,
                                   section_name: str, university_id: str) -> Dict[str, Any]:
    """Exam progress for a section scoped to one university"""
    students = await records.students_in_section(section_name, university_id=university_id)
    if not students:
        return {"section_name": section_name, "total_students": 0, "students": []}

    return await _exam_report(records, content, students, section_name, course_id)


# ==================== DASHBOARD ====================

async def cohort_results(records: RecordStore, view_type: str, identifier: str, course_id: str,
                         unit_id: str, sub_unit_id: str) -> Dict[str, Any]:
    """Students of the view plus all their mcq and coding attempts on one sub-unit"""
    students = await records.find_students(view_type, identifier)
    student_ids = _student_ids(students)

    mcq_rows, coding_rows, course_name = await asyncio.gather(
        records.fetch_results(course_id, unit_id, sub_unit_id, Modality.MCQ.value, student_ids),
        records.fetch_results(course_id, unit_id, sub_unit_id, Modality.CODING.value, student_ids),
        records.course_name(course_id),
    )
    return {
        "students": students,
        "mcq_rows": mcq_rows,
        "coding_rows": coding_rows,
        "course_name": course_name or course_id,
    }


async def analytics_summary(records: RecordStore, view_type: str, identifier: str, course_id: str,
                            unit_id: str, sub_unit_id: str) -> Dict[str, Any]:
    cohort = await cohort_results(records, view_type, identifier, course_id, unit_id, sub_unit_id)
    return {
        "summary": build_summary(cohort["mcq_rows"], cohort["coding_rows"]),
        "table": table_rows(cohort["students"], cohort["mcq_rows"], cohort["coding_rows"], cohort["course_name"]),
    }


async def lookup(records: RecordStore, lookup_type: str, value: str) -> dict:
    """Batch (and student) for a reg id, or the batch of a section"""
    found = None
    if lookup_type == "uni_reg_id":
        student = await records.student_by_reg_id(value)
        if student:
            found = {
                "batch_id": student.get("batch_id"),
                "student_id": student.get("student_id"),
                "student_name": student.get("student_name"),
            }
    elif lookup_type == "section":
        student = await records.any_student_in_section(value)
        if student:
            found = {"batch_id": student.get("batch_id")}

    if not found:
        raise NotFound("Not found")
    return found


async def student_history(records: RecordStore, uni_reg_id: str, course_id: str, unit_id: str,
                          sub_unit_id: str, result_type: str) -> Dict[str, Any]:
    modality = parse_modality(result_type)
    student = await resolve_student(records, uni_reg_id)
    rows = await records.fetch_results(course_id, unit_id, sub_unit_id, modality.value, [student["student_id"]])
    return history_trend(rows)


async def attempt_details(records: RecordStore, content: ContentStore, uni_reg_id: str, course_id: str,
                          unit_id: str, sub_unit_id: str, attempt: Any, result_type: str) -> Dict[str, Any]:
    """Deep dive into one attempt of one student"""
    modality = parse_modality(result_type)
    attempt_no = parse_attempt(attempt)
    student = await resolve_student(records, uni_reg_id)
    student_id = student["student_id"]

    row, submissions, sub_unit = await asyncio.gather(
        records.fetch_result_row(student_id, course_id, unit_id, sub_unit_id, modality.value, attempt_no),
        records.fetch_submissions(student_id, course_id, unit_id, sub_unit_id, attempt_no),
        content.fetch_sub_unit(course_id, unit_id, sub_unit_id),
    )

    if row is None and not submissions:
        raise AttemptNotFound(
            f"No result or submissions for attempt {attempt_no}",
            extra={"attempt": attempt_no, "resultType": modality.value},
        )
    if sub_unit is None:
        logger.warning(f"[ANALYTICS] Sub-unit {course_id}/{unit_id}/{sub_unit_id} missing from content tree")

    kept = filter_submissions(submissions, valid_question_ids(sub_unit, modality), modality)
    question_ids = sorted({str(s.get("question_id")) for s in kept})
    fetched = await asyncio.gather(*[
        content.fetch_question(course_id, unit_id, sub_unit_id, modality, qid) for qid in question_ids
    ])
    questions = {q.question_id: q for q in fetched if q is not None}

    report = assemble_attempt(
        ResultRecord.from_row(row) if row else None,
        submissions,
        sub_unit,
        questions,
        modality,
        attempt_no,
    )
    report["student"] = {
        "student_id": student_id,
        "uni_reg_id": student.get("uni_reg_id"),
        "student_name": student.get("student_name"),
    }
    return report
