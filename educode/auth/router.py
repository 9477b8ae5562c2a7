"""
Staff login endpoints
Teachers and the super admin get their record back; university admins get an
HttpOnly session cookie
"""

import logging

from fastapi import APIRouter, Depends, Response

from educode.auth.dependencies import get_current_admin
from educode.auth.schemas import (
    AdminLoginRequest,
    GhostLoginRequest,
    SuperAdminLoginRequest,
    TeacherLoginRequest,
)
from educode.auth.security import create_admin_token, verify_password, without_secrets
from educode.config import Settings
from educode.dependencies import get_app_settings, get_records
from educode.errors import AuthenticationError, NotFound, require_fields
from educode.stores.records import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])
super_admin_router = APIRouter(prefix="/api/super-admin", tags=["Super Admin"])

# ==================== TEACHER ====================

@router.post("/teacher/login")
async def teacher_login(data: TeacherLoginRequest, records: RecordStore = Depends(get_records)):
    require_fields(data.model_dump(), "uni_reg_id", "password")

    teacher = await records.teacher_by_reg_id(data.uni_reg_id)
    if not verify_password(teacher, data.password):
        raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

    logger.info(f"[AUTH] Teacher login: {data.uni_reg_id}")
    return {"success": True, "data": without_secrets(teacher)}

# ==================== UNIVERSITY ADMIN ====================

def _cookie_policy(settings: Settings) -> dict:
    # Cross-site cookies need Secure + SameSite=None in production.
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
    }

@router.post("/admin/login")
async def admin_login(
    data: AdminLoginRequest,
    response: Response,
    records: RecordStore = Depends(get_records),
    settings: Settings = Depends(get_app_settings)
):
    """
    Verify university admin credentials and issue the session cookie
    """
    require_fields(data.model_dump(), "email", "password")

    admin = await records.admin_by_email(data.email)
    if not verify_password(admin, data.password):
        raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

    token = create_admin_token(settings, admin)
    response.set_cookie(
        settings.ADMIN_COOKIE_NAME,
        token,
        max_age=settings.ADMIN_TOKEN_EXPIRE_HOURS * 60 * 60,
        **_cookie_policy(settings)
    )
    logger.info(f"[AUTH] Admin login: {data.email}")
    return {"success": True, "message": "Logged in successfully"}

@router.get("/admin/me")
async def admin_me(admin: dict = Depends(get_current_admin)):
    return {
        "email": admin.get("sub"),
        "name": admin.get("name"),
        "universityId": admin.get("universityId"),
        "isAuthenticated": True,
    }

@router.post("/admin/logout")
async def admin_logout(response: Response, settings: Settings = Depends(get_app_settings)):
    response.delete_cookie(settings.ADMIN_COOKIE_NAME, **_cookie_policy(settings))
    return {"success": True, "message": "Logged out"}

# ==================== SUPER ADMIN ====================

@super_admin_router.post("/login")
async def super_admin_login(data: SuperAdminLoginRequest, records: RecordStore = Depends(get_records)):
    require_fields(data.model_dump(), "username", "password")

    admin = await records.super_admin_by_username(data.username)
    if not verify_password(admin, data.password):
        raise AuthenticationError("Invalid Admin Credentials", code="INVALID_CREDENTIALS")

    return {"success": True, "data": without_secrets(admin)}

@super_admin_router.get("/teachers")
async def list_teachers(records: RecordStore = Depends(get_records)):
    return {"success": True, "data": await records.all_teachers()}

@super_admin_router.post("/ghost-login")
async def ghost_login(data: GhostLoginRequest, records: RecordStore = Depends(get_records)):
    """
    Act as a teacher without their password
    """
    require_fields(data.model_dump(), "uni_reg_id")

    teacher = await records.teacher_by_reg_id(data.uni_reg_id)
    if not teacher:
        raise NotFound("Teacher not found", code="TEACHER_NOT_FOUND")

    logger.warning(f"[AUTH] Ghost login as teacher {data.uni_reg_id}")
    return {"success": True, "data": without_secrets(teacher), "message": "Ghost login successful"}
