from fastapi import APIRouter, Depends

from educode.analytics import service
from educode.analytics.schemas import (
    SectionCompletionRequest,
    SectionExamProgressRequest,
    UnitCompletionRequest,
)
from educode.dependencies import get_content, get_records
from educode.errors import require_fields
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

router = APIRouter(prefix="/api/teacher/analytics", tags=["Teacher Analytics"])

# ==================== COMPLETION ====================

@router.post("/unit-completion")
async def unit_completion(
    data: UnitCompletionRequest,
    records: RecordStore = Depends(get_records),
    content: ContentStore = Depends(get_content)
):
    """
    Completion of every assessable sub-unit of a unit for one student
    """
    require_fields(data.model_dump(), "student_id", "course_id", "unit_id")
    result = await service.unit_completion(records, content, data.student_id, data.course_id, data.unit_id)
    return {"success": True, "data": result}

@router.post("/section-completion")
async def section_completion(
    data: SectionCompletionRequest,
    records: RecordStore = Depends(get_records),
    content: ContentStore = Depends(get_content)
):
    """
    Practice completion for a section of one university
    """
    require_fields(data.model_dump(), "section_name", "course_id", "university_id")
    result = await service.section_completion(
        records, content, data.section_name, data.course_id, data.university_id
    )
    return {"success": True, "data": result}

# ==================== EXAMS ====================

@router.post("/section-exam-progress")
async def section_exam_progress(
    data: SectionExamProgressRequest,
    records: RecordStore = Depends(get_records),
    content: ContentStore = Depends(get_content)
):
    """
    Exam completion, marks and system configs for a section
    The batch is found from the course registration
    """
    require_fields(data.model_dump(), "course_id", "section_name")
    result = await service.section_exam_progress(records, content, data.course_id, data.section_name)
    return {"success": True, "data": result}
