"""
University admin views
Every query is scoped to the university id carried by the admin session
"""

import logging
from typing import Any, Dict, List

from educode.analytics.blueprint import build_unit_blueprint
from educode.analytics.extraction import percent_from, to_number
from educode.analytics.progress import cohort_average
from educode.analytics.trends import ATTEMPT_PASS_PERCENT
from educode.content.tree import Modality, UnitNode
from educode.errors import ContentNotFound
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

logger = logging.getLogger(__name__)


async def my_batches(records: RecordStore, university_id: str) -> List[dict]:
    return await records.batches(university_id)


async def my_teachers(records: RecordStore, university_id: str) -> List[dict]:
    return await records.teachers(university_id)


# ==================== COURSE STRUCTURE ====================

def _unit_summary(unit: UnitNode) -> Dict[str, Any]:
    blueprint = build_unit_blueprint(unit)
    return {
        "unit_id": unit.unit_id,
        "unit_name": unit.name,
        "total_sub_units": len(unit.sub_units),
        "analytics": {
            "assessable_sub_units": len(blueprint),
            "mcq_sub_units": sum(1 for item in blueprint if item.has_mcq),
            "coding_sub_units": sum(1 for item in blueprint if item.has_coding),
            "total_mcq_questions": sum(
                max(len(s.question_ids(Modality.MCQ)), s.total_mcq_questions) for s in unit.sub_units
            ),
            "total_coding_questions": sum(
                max(len(s.question_ids(Modality.CODING)), s.total_coding_questions) for s in unit.sub_units
            ),
        },
        "sub_units": [
            {
                "sub_unit_id": s.sub_unit_id,
                "title": s.title,
                "type": s.kind,
                "sub_type": s.sub_type,
            }
            for s in unit.sub_units
        ],
    }


async def course_structure(content: ContentStore, course_id: str) -> List[dict]:
    """Units with their sub-units and assessment counts from the content tree"""
    try:
        tree = await content.fetch_course_tree(course_id)
    except ContentNotFound as e:
        logger.info(f"[ADMIN] Course structure empty: {e.path}")
        return []
    return [_unit_summary(unit) for unit in tree.units]


# ==================== STUDENTS ====================

async def section_students(records: RecordStore, section: str, university_id: str) -> List[dict]:
    """Students of the section whose batch belongs to the university"""
    batches = await records.batches(university_id)
    batch_ids = [b["batch_id"] for b in batches if b.get("batch_id")]
    return await records.students_in_batches(section, batch_ids)


async def _section_courses(records: RecordStore, students: List[dict], university_id: str) -> List[dict]:
    # Courses come from the first student's batch, or the whole university when it has none.
    batch = await records.batch(students[0].get("batch_id")) if students[0].get("batch_id") else None
    course_ids = (batch or {}).get("registered_courses_id") or []
    if course_ids:
        return await records.courses_by_ids(course_ids)
    return await records.courses_for_university(university_id)


def _course_cell(rows: List[dict], course: dict) -> Dict[str, Any]:
    obtained = sum(to_number(r.get("marks_obtained")) for r in rows)
    possible = sum(to_number(r.get("total_marks")) for r in rows)
    cell = {
        "course_id": course.get("course_id"),
        "course_name": course.get("course_name"),
        "score": 0,
        "status": "N/A",
    }
    if possible > 0:
        score = percent_from(obtained, possible)
        cell.update(score=score, status="Pass" if score >= ATTEMPT_PASS_PERCENT else "Fail")
    return cell


async def section_analytics(records: RecordStore, section: str, university_id: str) -> Dict[str, Any]:
    """
    Student x course matrix for a section

    Each cell is the pooled percentage over all of the student's results in
    the course; class averages are the mean of the scored cells per course.
    """
    students = await records.students_in_section(section, university_id=university_id)
    if not students:
        return {
            "section_metadata": {"section_name": section, "total_students": 0, "total_courses": 0},
            "course_performance": [],
            "student_performance": [],
        }

    courses = await _section_courses(records, students, university_id)
    rows = await records.fetch_course_results(
        [s["student_id"] for s in students], [c["course_id"] for c in courses]
    )

    grouped: Dict[tuple, List[dict]] = {}
    for row in rows:
        grouped.setdefault((row.get("student_id"), row.get("course_id")), []).append(row)

    scored: Dict[Any, List[int]] = {c["course_id"]: [] for c in courses}
    performance = []
    for student in students:
        cells = [_course_cell(grouped.get((student["student_id"], c["course_id"]), []), c) for c in courses]
        taken = [cell for cell in cells if cell["status"] != "N/A"]
        for cell in taken:
            scored[cell["course_id"]].append(cell["score"])
        performance.append({
            "student_id": student["student_id"],
            "student_name": student.get("student_name"),
            "uni_reg_id": student.get("uni_reg_id"),
            "overall_progress": cohort_average([cell["score"] for cell in taken]),
            "courses": cells,
        })

    return {
        "section_metadata": {
            "section_name": section,
            "total_students": len(students),
            "total_courses": len(courses),
        },
        "course_performance": [
            {
                "course_id": c["course_id"],
                "course_name": c.get("course_name"),
                "average_score": cohort_average(scored[c["course_id"]]),
            }
            for c in courses
        ],
        "student_performance": performance,
    }
