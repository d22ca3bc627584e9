"""FastAPI application factory and HTTP controllers.

Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Errors raised by the services are
mapped to HTTP responses by the exception handlers registered in
`create_app`.

Endpoints implemented:
- GET /courses            (also under /api/courses)
- POST /courses
- DELETE /courses?id=
- POST /admin/login
- POST /admin/refresh
- POST /admin/logout
- GET /admin/data
- GET /admin/user
- GET /health
"""

import json
import logging
import time
import uuid
from typing import List, Optional

from fastapi import APIRouter, Cookie, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlmodel import Session

from . import schemas, services
from .auth import (
    ACCESS,
    REFRESH_COOKIE,
    Principal,
    clear_token_cookies,
    get_current_principal,
    get_settings,
    issue_tokens,
    load_principal,
    refresh_access_token,
    set_token_cookie,
)
from .config import Settings, get_settings as load_settings
from .database import create_db_and_tables, create_db_engine, get_session
from .errors import AppError, ValidationError

logger = logging.getLogger("app.api")

courses_router = APIRouter(tags=["courses"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def _course_detail(course) -> dict:
    return schemas.CourseDetailOut.model_validate(course).model_dump(by_alias=True)


@courses_router.get("")
def get_courses(
    id: Optional[str] = Query(default=None),
    theme: Optional[str] = Query(default=None),
    reading_time: Optional[str] = Query(default=None, alias="readingTime"),
    has_tests: Optional[str] = Query(default=None, alias="hasTests"),
    db: Session = Depends(get_session),
):
    """Get one course by `id`, or list courses matching the filters.

    With `id` the response is the hydrated course, or `null` when no such
    course exists. Without it, `theme` and `readingTime` match
    case-insensitive substrings and `hasTests=true|false` matches exactly.
    """
    svc = services.CourseService(db)
    if id is not None:
        course = svc.get(services.parse_course_id(id))
        return _course_detail(course) if course else None
    courses = svc.list(theme=theme, reading_time=reading_time, has_tests=services.parse_has_tests(has_tests))
    return [_course_detail(c) for c in courses]


@courses_router.post("", status_code=201, response_model=schemas.CourseDetailOut)
def create_course(payload: schemas.CourseIn, db: Session = Depends(get_session)):
    """Create a course together with its text blocks, tests and answers.

    The whole aggregate is written in one transaction.
    """
    course = services.CourseService(db).create(payload)
    return schemas.CourseDetailOut.model_validate(course)


@courses_router.delete("", response_model=schemas.MessageOut)
def delete_course(id: Optional[str] = Query(default=None), db: Session = Depends(get_session)):
    """Delete a course and all of its children. Unknown ids are a no-op."""
    course_id = services.parse_course_id(id)
    services.CourseService(db).delete(course_id)
    return schemas.MessageOut(message="Course removed")


@admin_router.post("/login", response_model=schemas.MessageOut)
def login(payload: schemas.LoginIn, response: Response, db: Session = Depends(get_session),
          settings: Settings = Depends(get_settings)):
    """Check admin credentials and set the access and refresh cookies."""
    settings.require_jwt_secret()
    user = services.AuthService(db).verify_credentials(payload.username, payload.password)
    issue_tokens(response, user.id, settings)
    logger.info("admin login user_id=%s", user.id)
    return schemas.MessageOut(message="Logged in")


@admin_router.post("/refresh", response_model=schemas.MessageOut)
def refresh(response: Response,
            refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
            settings: Settings = Depends(get_settings),
            db: Session = Depends(get_session)):
    """Mint a new access token from the refresh cookie.

    The token's user must still exist, as for the admin route gate.
    """
    user_id, access_token = refresh_access_token(refresh_token, settings)
    load_principal(db, user_id)
    set_token_cookie(response, ACCESS, access_token, settings)
    return schemas.MessageOut(message="Refreshed")


@admin_router.post("/logout", response_model=schemas.MessageOut)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    clear_token_cookies(response, settings)
    return schemas.MessageOut(message="Logged out")


@admin_router.get("/data", response_model=List[schemas.CourseOut])
def admin_data(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_session)):
    """List course rows (without children) for the admin area."""
    return [schemas.CourseOut.model_validate(c) for c in services.CourseService(db).list_summaries()]


@admin_router.get("/user", response_model=schemas.PrincipalOut)
def admin_user(principal: Principal = Depends(get_current_principal)):
    """Return the authenticated admin."""
    return schemas.PrincipalOut(id=principal.id, username=principal.username)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("request failed %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    issues = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
    return await app_error_handler(request, ValidationError(issues))


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application.

    The storage engine is created once here (from `settings.DATABASE_URL`
    unless one is passed in) and handed to request handlers through
    `app.state`, so tests can run against their own database.
    """
    settings = settings or load_settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(title="Courses API", version="1.0.0", description="API for managing courses")
    app.state.settings = settings
    app.state.engine = engine if engine is not None else create_db_engine(settings.DATABASE_URL)
    create_db_and_tables(app.state.engine)

    if settings.CORS_ORIGIN_URL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.CORS_ORIGIN_URL],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        return response

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(courses_router, prefix="/courses")
    app.include_router(courses_router, prefix="/api/courses")
    app.include_router(admin_router)

    @app.get("/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"status": "ok"}

    return app


app = create_app()
