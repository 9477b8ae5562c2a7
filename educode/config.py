"""
EduCode Analytics Configuration
Store URLs, content-tree root and session settings
"""

import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "super-secret-key-change-in-prod"
ADMIN_COOKIE_NAME = "admin_token"


class Settings:
    """Validated configuration - fails fast on missing vars"""

    def __init__(self):
        self.MONGO_URL = self._require_env("MONGO_URL")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "educode")

        self.FIREBASE_DATABASE_URL = self._require_env("FIREBASE_DATABASE_URL")
        self.FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
        self.FIREBASE_CLIENT_EMAIL = os.getenv("FIREBASE_CLIENT_EMAIL")
        private_key = os.getenv("FIREBASE_PRIVATE_KEY")
        self.FIREBASE_PRIVATE_KEY = private_key.replace('\\n', '\n') if private_key else None
        self.CONTENT_ROOT = os.getenv("CONTENT_ROOT", "EduCode")

        self.JWT_SECRET = os.getenv("JWT_SECRET") or DEFAULT_JWT_SECRET
        self.JWT_ALGORITHM = "HS256"
        self.ADMIN_TOKEN_EXPIRE_HOURS = int(os.getenv("ADMIN_TOKEN_EXPIRE_HOURS", "2"))
        self.ADMIN_COOKIE_NAME = ADMIN_COOKIE_NAME

        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.CORS_ORIGINS = self._parse_list(os.getenv("CORS_ORIGINS", "*"))

        if self.JWT_SECRET == DEFAULT_JWT_SECRET:
            logger.warning("[CONFIG] JWT_SECRET not set, using development default")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def has_service_account(self) -> bool:
        return bool(self.FIREBASE_PROJECT_ID and self.FIREBASE_CLIENT_EMAIL and self.FIREBASE_PRIVATE_KEY)

    @staticmethod
    def _require_env(key: str) -> str:
        """Get required environment variable or crash"""
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"FATAL: Missing required environment variable: {key}")
        return value

    @staticmethod
    def _parse_list(raw: str) -> List[str]:
        return [item.strip() for item in raw.split(",") if item.strip()]


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Load .env once and return the shared settings"""
    global _settings
    if _settings is None:
        load_dotenv()
        _settings = Settings()
    return _settings


def cors_origins() -> List[str]:
    """CORS origins are needed before startup, when the app object is built"""
    load_dotenv()
    return Settings._parse_list(os.getenv("CORS_ORIGINS", "*"))
