"""
Domain errors for the analytics API
Each error carries the code and HTTP status the request boundary reports
"""
from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base error converted to a JSON response by the app's exception handler"""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.extra = extra or {}

    def to_response(self) -> dict:
        body = {"success": False, "error": self.code, "details": self.message}
        body.update(self.extra)
        return body


class ValidationError(AnalyticsError):
    """Required request field missing"""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AnalyticsError):
    status_code = 401
    code = "UNAUTHORIZED"


class AuthorizationError(AnalyticsError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(AnalyticsError):
    status_code = 404
    code = "NOT_FOUND"


class ContentNotFound(NotFound):
    """Course or unit path absent from the content tree"""
    code = "CONTENT_NOT_FOUND"

    def __init__(self, path: str):
        super().__init__(f"Content not found at '{path}'", extra={"path": path})
        self.path = path


class AttemptNotFound(NotFound):
    """Neither a result row nor any submission exists for the attempt"""
    code = "ATTEMPT_NOT_FOUND"


class StudentNotFound(NotFound):
    code = "STUDENT_NOT_FOUND"

    def __init__(self, identifier: str):
        super().__init__(f"Student '{identifier}' not found")


class StoreUnavailable(AnalyticsError):
    """The backing store query itself failed"""
    status_code = 500
    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str):
        super().__init__(f"Store operation failed: {operation}", extra={"operation": operation})
        self.operation = operation


def require_fields(body: Dict[str, Any], *names: str) -> None:
    """Raise ValidationError naming every required field when any is missing"""
    missing = [name for name in names if body.get(name) in (None, "")]
    if missing:
        if len(names) == 1:
            message = f"{names[0]} is required"
        elif len(names) == 2:
            message = f"{names[0]} and {names[1]} are required"
        else:
            message = f"{', '.join(names[:-1])}, and {names[-1]} are required"
        raise ValidationError(message, extra={"missing": missing})
