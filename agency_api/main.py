"""Agency API - FastAPI Application Entry Point."""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agency_api import __version__
from agency_api.config import env
from agency_api.context import request_id_var, user_id_var, user_role_var
from agency_api.db.engine import build_engine, build_sessionmaker
from agency_api.errors import AppError
from agency_api.routers import (
    accounts,
    auth,
    campaigns,
    change_log,
    clients,
    health,
    notifications,
    reports,
    settings,
    time_entries,
    users,
    websites,
)
from agency_api.schemas import ProblemDetail
from agency_api.utils import configure_json_logging

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://agency.local/problems"


def _instance() -> str:
    """Opaque instance identifier built from the request id."""
    request_id = request_id_var.get()
    return f"urn:agency:trace:{request_id}" if request_id else f"urn:agency:trace:{uuid.uuid4()}"


def _problem_response(
    status_code: int,
    type_: str,
    title: str,
    detail,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=type_,
        title=title,
        status=status_code,
        detail=detail,
        instance=_instance(),
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


def _get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as RFC 9457 Problem Details."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _problem_response(
            exc.status_code,
            f"{PROBLEM_BASE_URL}/{exc.slug}",
            exc.title,
            exc.detail,
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Preserve dict detail fields for structured error responses
        detail_value = exc.detail if exc.detail is not None else _get_title_for_status(exc.status_code)
        return _problem_response(
            exc.status_code,
            f"{PROBLEM_BASE_URL}/http-{exc.status_code}",
            _get_title_for_status(exc.status_code),
            detail_value,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Returns 422 with the first failing field in the detail."""
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        return _problem_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            f"{PROBLEM_BASE_URL}/validation-error",
            "Request Validation Failed",
            f"Invalid field '{field}': {msg}",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=True,
            extra={"event": "http.unhandled_exception", "error_type": type(exc).__name__},
        )
        return _problem_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"{PROBLEM_BASE_URL}/internal-error",
            "Internal Server Error",
            "An unexpected error occurred. Please try again later.",
        )


def register_middleware(app: FastAPI) -> None:
    # Starlette runs the most recently added middleware first, so the
    # request-id middleware (added last) is the outermost layer.

    @app.middleware("http")
    async def http_completion_logging_middleware(request: Request, call_next):
        """Log every HTTP request completion.

        Emits "http.request.completed" with method, path, status_code and
        duration_ms, including for requests that raised (status_code=500).
        """
        user_id_var.set("")
        user_role_var.set("")

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "http.request.completed",
                extra={
                    "event": "http.request.completed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            user_id_var.set("")
            user_role_var.set("")

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Accept or generate X-Request-ID and echo it on the response."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Build the application with its own engine and session factory.

    Args:
        database_url: Overrides DATABASE_URL (tests pass an in-memory SQLite URL)
    """
    if env.json_logs_enabled():
        configure_json_logging(log_level=env.get_log_level())
        logger.info("Structured JSON logging enabled")

    app = FastAPI(
        title="Agency Operations API",
        description="Clients, campaigns, time tracking, change logs and notifications for a digital agency.",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
    )

    engine = build_engine(database_url or env.get_database_url())
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)

    # Credentials travel in the Authorization header, never in cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=env.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    register_middleware(app)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(clients.router)
    app.include_router(accounts.router)
    app.include_router(websites.router)
    app.include_router(campaigns.router)
    app.include_router(time_entries.router)
    app.include_router(change_log.router)
    app.include_router(notifications.router)
    app.include_router(reports.router)
    app.include_router(settings.router)
    return app


app = create_app()
