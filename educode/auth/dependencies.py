import logging
from typing import Optional

from fastapi import Cookie, Depends, Request

from educode.auth.security import verify_admin_token
from educode.config import ADMIN_COOKIE_NAME, Settings
from educode.dependencies import get_app_settings
from educode.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)


async def get_current_admin(
    request: Request,
    admin_token: Optional[str] = Cookie(None, alias=ADMIN_COOKIE_NAME),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """
    FastAPI dependency to protect university admin routes

    Usage:
        @router.get("/my-batches")
        async def my_batches(admin: dict = Depends(get_current_admin)):
            return admin["universityId"]

    Returns:
        dict: Decoded session payload (sub, name, universityId, id)

    Raises:
        AuthenticationError: When the cookie is missing or invalid
        AuthorizationError: When the session has no university to scope to
    """
    logger.debug(f"[AUTH] Path: {request.url.path}, cookie present: {bool(admin_token)}")
    if not admin_token:
        raise AuthenticationError("Authentication required", extra={"path": request.url.path})

    admin = verify_admin_token(settings, admin_token)
    if not admin.get("universityId"):
        logger.warning(f"[AUTH] Admin session {admin.get('sub')} carries no university")
        raise AuthorizationError("Admin account is not linked to a university")
    return admin
