"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Response, status

from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status. Does not touch external dependencies."""
    return HealthResponse(status=HealthStatus.HEALTHY, service=get_settings().app_name)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Lead store reachable"},
        503: {"description": "Lead store unreachable"},
    },
    summary="Readiness check",
    description="Checks the lead store. Missing email configuration is reported but does not fail readiness.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check that quotes can be stored.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Lead store check and email configuration flag.
    """
    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    check = CheckResult(
        name="lead_store",
        healthy=db_result["healthy"],
        latency_ms=round(latency_ms, 2),
        error=db_result.get("error"),
    )

    if not check.healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if check.healthy else HealthStatus.UNHEALTHY,
        email_configured=get_settings().is_email_configured,
        checks=[check],
    )
