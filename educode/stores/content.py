"""
Content tree store over the Firebase Realtime Database

Read-only point lookups under ``{CONTENT_ROOT}/Courses``. Nodes are parsed into
the typed tree at this boundary; callers never see raw Firebase snapshots.
"""

import asyncio
import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError

from educode.config import Settings
from educode.content.tree import (
    CourseTree,
    Modality,
    SubUnitNode,
    UnitNode,
    parse_coding_question,
    parse_course,
    parse_mcq_question,
    parse_sub_unit,
    parse_unit,
)
from educode.errors import ContentNotFound, StoreUnavailable

logger = logging.getLogger(__name__)

APP_NAME = "educode-content"


def init_firebase(settings: Settings) -> firebase_admin.App:
    """
    Initialize the Firebase Admin app used for content reads

    Uses the service account from the environment when all of its pieces are
    set, application-default credentials otherwise.

    Raises:
        RuntimeError: If Firebase initialization fails
    """
    if APP_NAME in firebase_admin._apps:
        return firebase_admin.get_app(APP_NAME)

    try:
        if settings.has_service_account:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.FIREBASE_PROJECT_ID,
                "private_key": settings.FIREBASE_PRIVATE_KEY,
                "client_email": settings.FIREBASE_CLIENT_EMAIL,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
        else:
            cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(
            cred, {"databaseURL": settings.FIREBASE_DATABASE_URL}, name=APP_NAME
        )
    except (ValueError, FirebaseError) as e:
        raise RuntimeError(f"FATAL: Firebase initialization failed: {e}") from e

    logger.info("[CONTENT] Firebase Admin SDK initialized")
    return app


class ContentStore:
    """Course content lookups by slash-delimited path"""

    def __init__(self, app: Optional[firebase_admin.App] = None, root: str = "EduCode"):
        self.app = app
        self.root = root.strip("/")

    def _path(self, *parts: str) -> str:
        return "/".join([self.root, "Courses", *[str(p) for p in parts]])

    def _read(self, path: str) -> Any:
        return db.reference(path, app=self.app).get()

    async def get(self, *parts: str) -> Any:
        """Raw node at Courses/<parts...>, None when absent"""
        path = self._path(*parts)
        try:
            return await asyncio.to_thread(self._read, path)
        except FirebaseError as e:
            logger.error(f"[CONTENT] read {path} failed: {e}")
            raise StoreUnavailable(f"content read {path}") from e

    async def fetch_course_tree(self, course_id: str) -> CourseTree:
        units = await self.get(course_id, "units")
        if units is None:
            raise ContentNotFound(self._path(course_id, "units"))
        return parse_course(course_id, units)

    async def fetch_unit(self, course_id: str, unit_id: str) -> UnitNode:
        raw = await self.get(course_id, "units", unit_id)
        if not isinstance(raw, dict) or raw.get("sub-units") is None:
            raise ContentNotFound(self._path(course_id, "units", unit_id, "sub-units"))
        return parse_unit(unit_id, raw)

    async def fetch_sub_unit(self, course_id: str, unit_id: str, sub_unit_id: str) -> Optional[SubUnitNode]:
        raw = await self.get(course_id, "units", unit_id, "sub-units", sub_unit_id)
        if raw is None:
            return None
        return parse_sub_unit(sub_unit_id, unit_id, raw)

    async def fetch_question(self, course_id: str, unit_id: str, sub_unit_id: str,
                             modality: Modality, question_id: str):
        raw = await self.get(course_id, "units", unit_id, "sub-units", sub_unit_id, modality.value, question_id)
        if raw is None:
            return None
        if modality == Modality.CODING:
            return parse_coding_question(question_id, raw)
        return parse_mcq_question(question_id, raw)

    async def fetch_units_listing(self, course_id: str, unit_id: Optional[str] = None) -> list:
        """Units of a course, or sub-units of one unit, as ``[{id, ...}]``"""
        parts = (course_id, "units", unit_id, "sub-units") if unit_id else (course_id, "units")
        node = await self.get(*parts)
        if isinstance(node, dict):
            items = node.items()
        elif isinstance(node, list):
            items = ((str(i), v) for i, v in enumerate(node))
        else:
            return []
        return [dict(value, id=key) if isinstance(value, dict) else {"id": key, "value": value}
                for key, value in items if value is not None]
