"""Public lead endpoints: quote ingestion and the leads listing.

These keep the response shapes the static calculator pages expect, so they
return plain ``{"error": ...}`` bodies rather than the versioned API's
``ErrorResponse``.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import LeadStore, Mailer
from src.api.middleware.cors import public_cors_headers
from src.schemas.quote import LeadsResponse, QuoteSubmissionPayload, SubmitQuoteResponse
from src.services.lead_store_service import generate_abandoned_id, generate_submission_id
from src.services.submission_pipeline import notify_completed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leads"])

SUBMIT_QUOTE_PATH = "/submit-quote"
GET_LEADS_PATH = "/get-leads"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _method_not_allowed(headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method not allowed"},
        headers=headers,
    )


@router.api_route(SUBMIT_QUOTE_PATH, methods=ALL_METHODS, summary="Ingest a quote")
async def submit_quote(request: Request, lead_store: LeadStore, mailer: Mailer) -> Response:
    """Store a complete or abandoned quote posted by a browser client.

    A ``completedAt`` timestamp marks the quote complete; anything else is
    stored as abandoned. Complete quotes also trigger the notification email,
    whose failure does not affect the response.

    Args:
        request: Raw request; the body is parsed here so bad JSON gets a 400.
        lead_store: Lead store service.
        mailer: Email service for the completion notification.

    Returns:
        Response: ``SubmitQuoteResponse`` on success, ``{"error": ...}`` otherwise.
    """
    headers = public_cors_headers("POST, OPTIONS")
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=headers)
    if request.method != "POST":
        return _method_not_allowed(headers)

    try:
        payload = QuoteSubmissionPayload.model_validate(await request.json())
    except (ValueError, PydanticValidationError) as e:
        logger.warning("Rejected quote payload: %s", str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid quote payload"},
            headers=headers,
        )

    submission_id = generate_submission_id() if payload.status == "complete" else generate_abandoned_id()
    submission = payload.to_submission(submission_id, datetime.now(timezone.utc))

    try:
        await lead_store.append(submission)
    except Exception as e:
        logger.error("Error processing quote %s: %s", submission_id, str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to process quote"},
            headers=headers,
        )

    await notify_completed(submission, mailer)

    body = SubmitQuoteResponse(id=submission_id)
    return JSONResponse(content=body.model_dump(mode="json"), headers=headers)


@router.api_route(GET_LEADS_PATH, methods=ALL_METHODS, summary="List leads")
async def get_leads(request: Request, lead_store: LeadStore) -> Response:
    """Return every stored lead, newest first."""
    headers = public_cors_headers("GET, OPTIONS")
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers=headers)
    if request.method != "GET":
        return _method_not_allowed(headers)

    try:
        leads = await lead_store.list_leads()
    except Exception as e:
        logger.error("Error fetching leads: %s", str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch leads"},
            headers=headers,
        )

    return JSONResponse(content=LeadsResponse(leads=leads).model_dump(mode="json"), headers=headers)
