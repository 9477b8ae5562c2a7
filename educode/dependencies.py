from fastapi import Request

from educode.config import Settings
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_records(request: Request) -> RecordStore:
    """Record store created at startup"""
    return request.app.state.records

async def get_content(request: Request) -> ContentStore:
    """Content tree store created at startup"""
    return request.app.state.content

async def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
