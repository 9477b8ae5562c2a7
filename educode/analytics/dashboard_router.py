from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from educode.analytics import service
from educode.analytics.export import XLSX_MEDIA_TYPE, build_report_workbook, workbook_bytes
from educode.analytics.schemas import (
    AttemptDetailsRequest,
    HistoryRequest,
    LookupRequest,
    SectionExamProgressRequest,
    SummaryRequest,
)
from educode.dependencies import get_content, get_records
from educode.errors import require_fields
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

SUMMARY_FIELDS = ("viewType", "identifier", "courseId", "unitId", "subUnitId")

# ==================== MASTERS ====================

@router.get("/masters/batches")
async def list_batches(records: RecordStore = Depends(get_records)):
    batches = await records.all_batches()
    return {
        "success": True,
        "data": [{"batch_id": b.get("batch_id"), "batch_name": b.get("batch_name")} for b in batches],
    }

@router.get("/masters/sections")
async def list_sections(records: RecordStore = Depends(get_records)):
    return {"success": True, "data": await records.distinct_sections()}

# ==================== STRUCTURE ====================

@router.get("/structure/{course_id}")
async def course_structure(
    course_id: str,
    unit_id: Optional[str] = Query(None, alias="unitId"),
    content: ContentStore = Depends(get_content)
):
    """
    Units of a course, or the sub-units of one unit when unitId is given
    """
    return {"success": True, "data": await content.fetch_units_listing(course_id, unit_id)}

@router.post("/lookup")
async def lookup(data: LookupRequest, records: RecordStore = Depends(get_records)):
    """
    Resolve a student reg id or a section to its batch
    """
    require_fields(data.model_dump(), "type", "value")
    return {"success": True, "data": await service.lookup(records, data.type, data.value)}

# ==================== COHORT ANALYTICS ====================

@router.post("/analytics/summary")
async def analytics_summary(data: SummaryRequest, records: RecordStore = Depends(get_records)):
    """
    Pass/fail tallies, behaviour averages, attempt trends and the student table
    """
    require_fields(data.model_dump(), *SUMMARY_FIELDS)
    result = await service.analytics_summary(
        records, data.viewType, data.identifier, data.courseId, data.unitId, data.subUnitId
    )
    return {"success": True, **result}

@router.post("/export/excel")
async def export_excel(data: SummaryRequest, records: RecordStore = Depends(get_records)):
    """
    Same cohort as the summary, as an xlsx download
    """
    require_fields(data.model_dump(), *SUMMARY_FIELDS)
    cohort = await service.cohort_results(
        records, data.viewType, data.identifier, data.courseId, data.unitId, data.subUnitId
    )
    return StreamingResponse(
        workbook_bytes(build_report_workbook(cohort)),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="Report.xlsx"'}
    )

# ==================== STUDENT ====================

@router.post("/student/history")
async def student_history(data: HistoryRequest, records: RecordStore = Depends(get_records)):
    require_fields(data.model_dump(), "uniRegId", "courseId", "unitId", "subUnitId", "resultType")
    result = await service.student_history(
        records, data.uniRegId, data.courseId, data.unitId, data.subUnitId, data.resultType
    )
    return {"success": True, "data": result}

@router.post("/student/attempt-details")
async def attempt_details(
    data: AttemptDetailsRequest,
    records: RecordStore = Depends(get_records),
    content: ContentStore = Depends(get_content)
):
    """
    Deep dive into one attempt: scores, proctoring, enriched submissions
    Hidden test cases never carry their real input or output
    """
    require_fields(
        data.model_dump(), "uniRegId", "courseId", "unitId", "subUnitId", "attempt", "resultType"
    )
    result = await service.attempt_details(
        records, content, data.uniRegId, data.courseId, data.unitId, data.subUnitId,
        data.attempt, data.resultType
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
    University-scoped exam completion with system configs
    """
    require_fields(data.model_dump(), "course_id", "section_name", "university_id")
    result = await service.university_exam_progress(
        records, content, data.course_id, data.section_name, data.university_id
    )
    return {"success": True, "data": result}
