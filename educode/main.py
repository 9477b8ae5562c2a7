import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from educode.admin.router import router as university_router
from educode.analytics.dashboard_router import router as dashboard_router
from educode.analytics.teacher_router import router as teacher_analytics_router
from educode.auth.router import router as auth_router, super_admin_router
from educode.config import cors_origins, get_settings
from educode.errors import AnalyticsError
from educode.stores.content import ContentStore, init_firebase
from educode.stores.records import RecordStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app.state.settings = settings
    app.state.records = RecordStore.connect(settings.MONGO_URL, settings.MONGO_DB_NAME)
    app.state.content = ContentStore(init_firebase(settings), root=settings.CONTENT_ROOT)
    logger.info(f"[STARTUP] EduCode Analytics API ready ({settings.ENVIRONMENT})")
    try:
        yield
    finally:
        app.state.records.close()


app = FastAPI(title="EduCode Analytics API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== ERROR HANDLING ====================

@app.exception_handler(AnalyticsError)
async def analytics_error_handler(request: Request, exc: AnalyticsError):
    if exc.status_code >= 500:
        logger.error(f"[ERROR] {request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "VALIDATION_ERROR", "details": "Malformed request body"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[ERROR] Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "error": "SERVER_ERROR"})

# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router)
app.include_router(super_admin_router)
app.include_router(teacher_analytics_router)
app.include_router(dashboard_router)
app.include_router(university_router)


@app.get("/")
async def root():
    return {"message": "EduCode Analytics API is running"}


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
