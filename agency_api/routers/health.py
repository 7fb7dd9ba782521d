"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request, Response, status
from sqlalchemy import text

from agency_api import __version__
from agency_api.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def check_database(request: Request) -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error(
            "Database health check failed",
            extra={"event": "health.database_down", "error_type": type(e).__name__},
        )
        return f"down: {str(e)[:50]}"


def _health(request: Request, response: Response) -> HealthResponse:
    database = check_database(request)
    healthy = database == "up"
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        database=database,
    )


@router.get("/health", response_model=HealthResponse)
def health(request: Request, response: Response) -> HealthResponse:
    """Liveness plus a database round trip. 503 when the database is down."""
    return _health(request, response)


@router.get("/api/health", response_model=HealthResponse, include_in_schema=False)
def api_health(request: Request, response: Response) -> HealthResponse:
    return _health(request, response)
