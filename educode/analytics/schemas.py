from pydantic import BaseModel
from typing import Any, Optional

# Fields are optional here and checked with require_fields in the routers so a
# missing field is reported as VALIDATION_ERROR rather than FastAPI's 422.

# ==================== TEACHER ANALYTICS ====================

class UnitCompletionRequest(BaseModel):
    student_id: Optional[str] = None
    course_id: Optional[str] = None
    unit_id: Optional[str] = None

class SectionCompletionRequest(BaseModel):
    section_name: Optional[str] = None
    course_id: Optional[str] = None
    university_id: Optional[str] = None

class SectionExamProgressRequest(BaseModel):
    course_id: Optional[str] = None
    section_name: Optional[str] = None
    university_id: Optional[str] = None

# ==================== DASHBOARD ====================

class LookupRequest(BaseModel):
    type: Optional[str] = None
    value: Optional[str] = None

class SummaryRequest(BaseModel):
    viewType: Optional[str] = None
    identifier: Optional[str] = None
    courseId: Optional[str] = None
    unitId: Optional[str] = None
    subUnitId: Optional[str] = None

class HistoryRequest(BaseModel):
    uniRegId: Optional[str] = None
    courseId: Optional[str] = None
    unitId: Optional[str] = None
    subUnitId: Optional[str] = None
    resultType: Optional[str] = None

class AttemptDetailsRequest(HistoryRequest):
    attempt: Optional[Any] = None
