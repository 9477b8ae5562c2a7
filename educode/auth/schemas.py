from pydantic import BaseModel
from typing import Optional

# ==================== LOGIN BODIES ====================

class TeacherLoginRequest(BaseModel):
    uni_reg_id: Optional[str] = None
    password: Optional[str] = None

class AdminLoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class SuperAdminLoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None

class GhostLoginRequest(BaseModel):
    uni_reg_id: Optional[str] = None
