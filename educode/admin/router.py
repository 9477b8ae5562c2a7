from fastapi import APIRouter, Depends

from educode.admin import service
from educode.auth.dependencies import get_current_admin
from educode.dependencies import get_content, get_records
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

router = APIRouter(prefix="/api/university", tags=["University Admin"])

# ==================== ORGANISATION ====================

@router.get("/my-batches")
async def my_batches(
    admin: dict = Depends(get_current_admin),
    records: RecordStore = Depends(get_records)
):
    return {"success": True, "data": await service.my_batches(records, admin.get("universityId"))}

@router.get("/my-teachers")
async def my_teachers(
    admin: dict = Depends(get_current_admin),
    records: RecordStore = Depends(get_records)
):
    return {"success": True, "data": await service.my_teachers(records, admin.get("universityId"))}

# ==================== COURSES & SECTIONS ====================

@router.get("/course-structure/{course_id}")
async def course_structure(
    course_id: str,
    admin: dict = Depends(get_current_admin),
    content: ContentStore = Depends(get_content)
):
    """
    Units, sub-units and assessment counts of a course
    """
    return {"success": True, "data": await service.course_structure(content, course_id)}

@router.get("/students/{section}")
async def section_students(
    section: str,
    admin: dict = Depends(get_current_admin),
    records: RecordStore = Depends(get_records)
):
    """
    Students of a section, limited to batches of the admin's university
    """
    data = await service.section_students(records, section, admin.get("universityId"))
    return {"success": True, "data": data}

@router.get("/section-analytics/{section}")
async def section_analytics(
    section: str,
    admin: dict = Depends(get_current_admin),
    records: RecordStore = Depends(get_records)
):
    """
    Student x course score matrix with class averages
    """
    data = await service.section_analytics(records, section, admin.get("universityId"))
    return {"success": True, "data": data}
