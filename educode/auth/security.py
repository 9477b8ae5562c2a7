"""
Credential checks and admin session tokens
Passwords are compared against a sha256 hash when one is stored; session tokens
are HS256 JWTs carried in the admin_token cookie
"""

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from educode.config import Settings
from educode.errors import AuthenticationError

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash password using sha256"""
    return hashlib.sha256(password.encode()).hexdigest()


def verify_password(account: Optional[dict], password: str) -> bool:
    """
    Check a login password against a stored account

    Args:
        account: Stored record (None when the lookup found nothing)
        password: Password from the request body

    Returns:
        bool: True when the password matches
    """
    if not account or not password:
        return False

    stored_hash = account.get("password_hash")
    if stored_hash:
        return hmac.compare_digest(hash_password(password), str(stored_hash))

    stored_plain = account.get("password")
    if stored_plain is None:
        return False
    logger.warning("[AUTH] Account has no password_hash, falling back to legacy plaintext column")
    return hmac.compare_digest(str(password).encode(), str(stored_plain).encode())


def without_secrets(account: dict) -> dict:
    """Account record safe to return to the client"""
    return {k: v for k, v in account.items() if k not in ("password", "password_hash", "_id")}


def create_admin_token(settings: Settings, admin: dict) -> str:
    """
    Create the university admin session token

    Args:
        settings: App settings (secret, algorithm, lifetime)
        admin: university_admins record

    Returns:
        str: JWT token
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": admin.get("email"),
        "name": admin.get("admin_name"),
        "universityId": admin.get("university_id"),
        "id": admin.get("admin_id"),
        "iat": now,
        "exp": now + timedelta(hours=settings.ADMIN_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_admin_token(settings: Settings, token: str) -> dict:
    """
    Decode and validate an admin session token

    Raises:
        AuthenticationError: INVALID_TOKEN when expired, tampered or malformed
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired", code="INVALID_TOKEN")
    except jwt.InvalidTokenError as e:
        logger.info(f"[AUTH] Token verification failed: {e}")
        raise AuthenticationError("Authentication failed", code="INVALID_TOKEN")
