"""
Record store over MongoDB (motor)

One collection per table: students, results, student_submission, courses,
batches, teachers_details, university_admins, super_admins. Every query goes
through ``_guard`` so driver failures are logged once and surface as
StoreUnavailable.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from educode.errors import StoreUnavailable

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}

STUDENT_FIELDS = {
    "_id": 0, "student_id": 1, "student_name": 1, "uni_reg_id": 1,
    "section": 1, "batch_id": 1, "uni_id": 1,
}

TEACHER_FIELDS = {"_id": 0, "password": 0, "password_hash": 0}


class RecordStore:
    """Read queries used by the analytics and admin services"""

    def __init__(self, db: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None):
        self.db = db
        self.client = client

    @classmethod
    def connect(cls, mongo_url: str, db_name: str) -> "RecordStore":
        client = AsyncIOMotorClient(mongo_url)
        logger.info(f"[RECORDS] MongoDB connected (db={db_name})")
        return cls(client[db_name], client)

    def close(self) -> None:
        if self.client:
            self.client.close()
            logger.info("[RECORDS] MongoDB disconnected")

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except PyMongoError as e:
            logger.error(f"[RECORDS] {operation} failed: {e}")
            raise StoreUnavailable(operation) from e

    async def _find(self, collection: str, operation: str, query: dict,
                    projection: Optional[dict] = None, sort: Optional[list] = None) -> List[dict]:
        async with self._guard(operation):
            cursor = self.db[collection].find(query, projection or NO_ID)
            if sort:
                cursor = cursor.sort(sort)
            return await cursor.to_list(length=None)

    async def _find_one(self, collection: str, operation: str, query: dict,
                        projection: Optional[dict] = None) -> Optional[dict]:
        async with self._guard(operation):
            return await self.db[collection].find_one(query, projection or NO_ID)

    # ==================== STUDENTS ====================

    async def find_students(self, view_type: str, identifier: str) -> List[dict]:
        """Students of a batch, a section, or the single student with the reg id"""
        if view_type == "batch":
            query = {"batch_id": identifier}
        elif view_type == "section":
            query = {"section": identifier}
        else:
            query = {"uni_reg_id": identifier}
        return await self._find("students", "find_students", query, STUDENT_FIELDS)

    async def students_in_section(self, section: str, university_id: Optional[str] = None,
                                  batch_id: Optional[str] = None) -> List[dict]:
        """Students of a section within a university or a batch; no scope matches nobody"""
        if not university_id and not batch_id:
            return []
        query: Dict[str, Any] = {"section": section}
        if university_id:
            query["uni_id"] = university_id
        if batch_id:
            query["batch_id"] = batch_id
        return await self._find(
            "students", "students_in_section", query, STUDENT_FIELDS,
            sort=[("student_name", ASCENDING)],
        )

    async def students_in_batches(self, section: str, batch_ids: List[str]) -> List[dict]:
        if not batch_ids:
            return []
        projection = dict(STUDENT_FIELDS, student_email=1, student_phone=1)
        return await self._find(
            "students", "students_in_batches",
            {"section": section, "batch_id": {"$in": batch_ids}}, projection,
            sort=[("student_name", ASCENDING)],
        )

    async def student_by_reg_id(self, uni_reg_id: str) -> Optional[dict]:
        return await self._find_one("students", "student_by_reg_id", {"uni_reg_id": uni_reg_id}, STUDENT_FIELDS)

    async def any_student_in_section(self, section: str) -> Optional[dict]:
        return await self._find_one("students", "any_student_in_section", {"section": section}, STUDENT_FIELDS)

    async def distinct_sections(self) -> List[str]:
        async with self._guard("distinct_sections"):
            sections = await self.db.students.distinct("section", {"section": {"$ne": None}})
        return sorted(sections)

    # ==================== RESULTS ====================

    async def fetch_results(self, course_id: str, unit_id: str, sub_unit_id: str,
                            result_type: str, student_ids: List[str]) -> List[dict]:
        """All attempts of one sub-unit modality for the students, newest attempt first"""
        if not student_ids:
            return []
        query = {
            "course_id": course_id,
            "unit_id": unit_id,
            "sub_unit_id": sub_unit_id,
            "result_type": result_type,
            "student_id": {"$in": student_ids},
        }
        return await self._find("results", "fetch_results", query, sort=[("attempt_count", DESCENDING)])

    async def fetch_submitted_results(self, student_ids: List[str], course_id: Optional[str] = None,
                                      unit_id: Optional[str] = None,
                                      sub_unit_id: Optional[str] = None) -> List[dict]:
        """One bulk query for every submitted result of the cohort in scope"""
        if not student_ids:
            return []
        query: Dict[str, Any] = {
            "student_id": {"$in": student_ids},
            "submitted_at": {"$ne": None},
        }
        if course_id is not None:
            query["course_id"] = course_id
        if unit_id is not None:
            query["unit_id"] = unit_id
        if sub_unit_id is not None:
            query["sub_unit_id"] = sub_unit_id
        return await self._find("results", "fetch_submitted_results", query)

    async def fetch_course_results(self, student_ids: List[str], course_ids: List[str]) -> List[dict]:
        """Marks rows across courses for a section matrix"""
        if not student_ids or not course_ids:
            return []
        projection = {"_id": 0, "student_id": 1, "course_id": 1, "marks_obtained": 1, "total_marks": 1}
        query = {"student_id": {"$in": student_ids}, "course_id": {"$in": course_ids}}
        return await self._find("results", "fetch_course_results", query, projection)

    async def fetch_result_row(self, student_id: str, course_id: str, unit_id: str,
                               sub_unit_id: str, result_type: str, attempt: int) -> Optional[dict]:
        query = {
            "student_id": student_id,
            "course_id": course_id,
            "unit_id": unit_id,
            "sub_unit_id": sub_unit_id,
            "result_type": result_type,
            "attempt_count": attempt,
        }
        return await self._find_one("results", "fetch_result_row", query)

    async def fetch_submissions(self, student_id: str, course_id: str, unit_id: str,
                                sub_unit_id: str, attempt: int) -> List[dict]:
        query = {
            "student_id": student_id,
            "course_id": course_id,
            "unit_id": unit_id,
            "sub_unit_id": sub_unit_id,
            "attempt": attempt,
        }
        return await self._find("student_submission", "fetch_submissions", query)

    # ==================== COURSES & BATCHES ====================

    async def course_name(self, course_id: str) -> Optional[str]:
        course = await self._find_one("courses", "course_name", {"course_id": course_id})
        return course.get("course_name") if course else None

    async def courses_by_ids(self, course_ids: List[str]) -> List[dict]:
        if not course_ids:
            return []
        return await self._find(
            "courses", "courses_by_ids", {"course_id": {"$in": course_ids}},
            {"_id": 0, "course_id": 1, "course_name": 1},
        )

    async def courses_for_university(self, university_id: str) -> List[dict]:
        return await self._find(
            "courses", "courses_for_university", {"university_id": university_id},
            {"_id": 0, "course_id": 1, "course_name": 1},
        )

    async def batch_for_course(self, course_id: str) -> Optional[dict]:
        """First batch whose registered_courses_id array contains the course"""
        return await self._find_one("batches", "batch_for_course", {"registered_courses_id": course_id})

    async def batch(self, batch_id: str) -> Optional[dict]:
        return await self._find_one("batches", "batch", {"batch_id": batch_id})

    async def all_batches(self) -> List[dict]:
        return await self._find("batches", "all_batches", {})

    async def batches(self, university_id: Optional[str]) -> List[dict]:
        if not university_id:
            return []
        return await self._find("batches", "batches", {"university_id": university_id})

    # ==================== STAFF ====================

    async def all_teachers(self) -> List[dict]:
        return await self._find("teachers_details", "all_teachers", {}, TEACHER_FIELDS,
                                sort=[("teacher_name", ASCENDING)])

    async def teachers(self, university_id: Optional[str]) -> List[dict]:
        if not university_id:
            return []
        return await self._find("teachers_details", "teachers", {"university_id": university_id},
                                TEACHER_FIELDS, sort=[("teacher_name", ASCENDING)])

    async def teacher_by_reg_id(self, uni_reg_id: str) -> Optional[dict]:
        return await self._find_one("teachers_details", "teacher_by_reg_id", {"uni_reg_id": uni_reg_id})

    async def admin_by_email(self, email: str) -> Optional[dict]:
        return await self._find_one("university_admins", "admin_by_email", {"email": email})

    async def super_admin_by_username(self, username: str) -> Optional[dict]:
        return await self._find_one("super_admins", "super_admin_by_username", {"username": username})
