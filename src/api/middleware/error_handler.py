"""Global error handling middleware for consistent error responses.

Wizard and submission failures are raised by the services as plain domain
exceptions. The middleware turns them into ``APIError`` responses so routes
can call the wizard directly.
"""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from src.schemas.common import ErrorResponse
from src.services.quote_wizard import WizardValidationError
from src.services.submission_pipeline import SubmissionError, SubmissionInProgressError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for errors returned to the client as ``ErrorResponse``."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """No quote session matches the caller's token."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND, error_type="not_found")


class ValidationError(APIError):
    """A wizard step or quote field was rejected."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )

    @classmethod
    def from_wizard(cls, error: WizardValidationError) -> "ValidationError":
        """Point the client at the step that needs attention."""
        return cls(
            error.reason,
            details=[{"loc": ["step", error.step], "msg": error.reason, "type": "step_incomplete"}],
        )

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> "ValidationError":
        details = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in error.errors()
        ]
        return cls("Invalid quote details", details=details)


class ConflictError(APIError):
    """A submit for this quote is still awaiting the lead store."""

    def __init__(self, message: str = "Your quote is already being submitted.") -> None:
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, error_type="conflict")


class SubmissionFailedError(APIError):
    """The lead store rejected a completed quote; the draft is kept for retry."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=status.HTTP_502_BAD_GATEWAY, error_type="submission_failed")


def to_api_error(error: Exception) -> APIError | None:
    """Map a wizard or submission exception to the matching API error.

    Args:
        error: Exception raised by the quote services.

    Returns:
        APIError | None: The API error, or None if the exception is not a
            known domain failure.
    """
    if isinstance(error, APIError):
        return error
    if isinstance(error, WizardValidationError):
        return ValidationError.from_wizard(error)
    # In-flight is a SubmissionError subclass, so it must be checked first
    if isinstance(error, SubmissionInProgressError):
        return ConflictError(error.message)
    if isinstance(error, SubmissionError):
        return SubmissionFailedError(error.message)
    return None


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except (APIError, WizardValidationError, SubmissionError) as e:
        api_error = to_api_error(e)
        if isinstance(e, SubmissionError) and not isinstance(e, SubmissionInProgressError):
            logger.warning("Quote submission failed on %s: %s", request.url.path, e.cause or e.message)
        else:
            logger.info(
                "Quote request rejected: %s - %s",
                api_error.error_type,
                api_error.message,
                extra={"request_id": request_id, "status_code": api_error.status_code},
            )
        return create_error_response(
            error_type=api_error.error_type,
            message=api_error.message,
            status_code=api_error.status_code,
            details=api_error.details,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning("HTTP exception: %s - %s", e.status_code, e.detail, extra={"request_id": request_id})
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
