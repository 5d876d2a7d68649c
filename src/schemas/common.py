"""Health and error schemas shared by every router."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness probe body."""

    status: HealthStatus = Field(description="Current health status")
    service: str = Field(description="Service name")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    version: str = Field(default="0.1.0", description="API version")


class CheckResult(BaseModel):
    """Outcome of one dependency check in the readiness probe."""

    name: str = Field(description="Name of the dependency being checked")
    healthy: bool
    latency_ms: float | None = Field(default=None, description="Response time in milliseconds")
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness probe body. The lead store is the only hard dependency."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    email_configured: bool = Field(description="Whether notification email can be sent")
    checks: list[CheckResult] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Field-level or step-level error detail."""

    loc: list[str | int] | None = Field(default=None, description="Location of error (e.g., field path)")
    msg: str = Field(description="Human-readable error message")
    type: str = Field(description="Error type identifier")


class ErrorResponse(BaseModel):
    """Error body returned by the versioned API."""

    error: str = Field(description="Error type or category")
    message: str = Field(description="Human-readable error description")
    details: list[ErrorDetail] | None = None
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build the body from an ``APIError``'s fields.

        Args:
            error_type: Category or type of error.
            message: Human-readable error description.
            details: Optional list of error detail dictionaries.
            request_id: Optional request ID for tracing.

        Returns:
            ErrorResponse: Formatted error response.
        """
        error_details = None
        if details:
            error_details = [
                ErrorDetail(
                    loc=d.get("loc"),
                    msg=d.get("msg", str(d)),
                    type=d.get("type", "error"),
                )
                for d in details
            ]

        return cls(error=error_type, message=message, details=error_details, request_id=request_id)
