from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from portal.api.routes import activity, admin_schedule, health, notifications, student, teacher
from portal.core.config import get_settings
from portal.core.exceptions import AppError
from portal.core.logging import configure_logging
from portal.core.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from portal.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()
logger = logging.getLogger("portal")


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings)
    ensure_runtime_schema_compatibility()
    logger.info("%s started", settings.project_name)
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error", "details": {}})


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(teacher.router, prefix=settings.api_prefix, tags=["teacher"])
app.include_router(admin_schedule.router, prefix=settings.api_prefix, tags=["admin"])
app.include_router(student.router, prefix=settings.api_prefix, tags=["student"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
app.include_router(activity.router, prefix=settings.api_prefix, tags=["activity"])
