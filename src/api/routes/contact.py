"""Service enquiry (contact form) endpoint."""

import logging
import re

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import Mailer
from src.schemas.contact import ContactRequest, ContactResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def _reply(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ContactResponse(message=message).model_dump())


@router.api_route(
    "/contact",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    response_model=ContactResponse,
    summary="Send a service enquiry",
)
async def send_enquiry(request: Request, mailer: Mailer) -> JSONResponse:
    """Validate an enquiry and forward it to the business mailbox.

    Every outcome is reported as ``{"message": ...}`` with the status code
    carrying success or failure.

    Args:
        request: Raw request; the body is parsed here to control the 400 message.
        mailer: Email service.

    Returns:
        JSONResponse: The outcome message.
    """
    if request.method != "POST":
        return _reply(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")

    try:
        enquiry = ContactRequest.model_validate(await request.json())
    except (ValueError, PydanticValidationError):
        return _reply(status.HTTP_400_BAD_REQUEST, "Missing required fields")

    if not enquiry.is_complete:
        return _reply(status.HTTP_400_BAD_REQUEST, "Missing required fields")

    if not EMAIL_PATTERN.fullmatch(enquiry.email):
        return _reply(status.HTTP_400_BAD_REQUEST, "Invalid email address")

    if not mailer.is_configured:
        logger.error("RESEND_API_KEY is not set")
        return _reply(status.HTTP_500_INTERNAL_SERVER_ERROR, "Email service not configured")

    result = await mailer.send_contact_enquiry(enquiry.name, enquiry.email, enquiry.message)
    if not result.get("success"):
        logger.error("Error sending enquiry email: %s", result.get("error"))
        return _reply(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send email")

    return _reply(status.HTTP_200_OK, "Email sent successfully")
