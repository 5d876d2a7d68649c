"""Quote wizard session routes.

Each visitor's wizard lives on the server and is addressed by the quote
session cookie. Every route returns the wizard snapshot after the change so
the client can render the step, rate and breakdown without recomputing them.
"""

import logging

from fastapi import APIRouter, Response, status
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import CurrentWizard, QuoteSessions, clear_quote_session_cookie, set_quote_session_cookie
from src.api.middleware.error_handler import ValidationError
from src.schemas.quote import QuoteDraftUpdate, SubmissionAccepted, SuburbSelection, WizardSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quote-sessions", tags=["quote-sessions"])


@router.post(
    "",
    response_model=WizardSnapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Start a new quote",
    description="Creates a fresh wizard on step 1 and sets the quote session cookie.",
)
async def create_quote_session(response: Response, sessions: QuoteSessions) -> WizardSnapshot:
    """Start a new quote, replacing whatever the cookie pointed at."""
    token, wizard = sessions.create_session()
    set_quote_session_cookie(response, token)
    return wizard.snapshot()


@router.get(
    "/me",
    response_model=WizardSnapshot,
    summary="Get current quote",
    description="Returns the current wizard snapshot, resuming a saved draft if needed.",
)
async def get_my_quote(wizard: CurrentWizard) -> WizardSnapshot:
    return wizard.snapshot()


@router.patch(
    "/me",
    response_model=WizardSnapshot,
    summary="Update quote details",
    description="Applies the supplied fields to the draft and recomputes the rate.",
)
async def update_my_quote(data: QuoteDraftUpdate, wizard: CurrentWizard) -> WizardSnapshot:
    """Apply a partial draft update.

    Args:
        data: Fields to change. Explicit nulls clear optional selections.
        wizard: The caller's wizard.

    Returns:
        WizardSnapshot: State after the edit.

    Raises:
        ValidationError: 422 if the merged draft is invalid.
        ConflictError: 409 if a submit is in flight.
    """
    try:
        return wizard.update(**data.changes())
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


@router.post(
    "/me/suburb",
    response_model=WizardSnapshot,
    summary="Select suburb",
    description="Sets the suburb and takes its travel time from the suburb table.",
)
async def select_suburb(data: SuburbSelection, wizard: CurrentWizard) -> WizardSnapshot:
    return wizard.select_suburb(data.suburb)


@router.post(
    "/me/advance",
    response_model=WizardSnapshot,
    summary="Next step",
    responses={422: {"description": "Current step is incomplete"}},
)
async def advance(wizard: CurrentWizard) -> WizardSnapshot:
    """Move forward one step.

    Raises:
        ValidationError: 422 with the reason the current step cannot advance.
    """
    return wizard.advance()


@router.post("/me/retreat", response_model=WizardSnapshot, summary="Previous step")
async def retreat(wizard: CurrentWizard) -> WizardSnapshot:
    return wizard.retreat()


@router.post(
    "/me/reset",
    response_model=WizardSnapshot,
    summary="Start over",
    description="Discards the draft and returns to step 1. The session is kept.",
)
async def reset(wizard: CurrentWizard) -> WizardSnapshot:
    return wizard.reset()


@router.post(
    "/me/submit",
    response_model=SubmissionAccepted,
    summary="Submit quote",
    responses={
        409: {"description": "A submit is already in progress"},
        422: {"description": "Wizard is not on the summary step"},
        502: {"description": "The quote could not be stored"},
    },
)
async def submit(wizard: CurrentWizard) -> SubmissionAccepted:
    """Submit the finished quote.

    The draft survives a failed submit so the visitor can retry.

    Args:
        wizard: The caller's wizard.

    Returns:
        SubmissionAccepted: The new submission id and the final snapshot.

    Raises:
        ValidationError: 422 if the wizard is not ready to submit.
        ConflictError: 409 if a submit is already in flight.
        SubmissionFailedError: 502 with a contact-directly message.
    """
    submission_id = await wizard.submit()
    return SubmissionAccepted(id=submission_id, snapshot=wizard.snapshot())


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Forget quote session",
    description="Discards the draft and clears the quote session cookie.",
)
async def delete_my_quote(response: Response, wizard: CurrentWizard) -> None:
    wizard.reset()
    clear_quote_session_cookie(response)
    logger.debug("Quote session cleared by client")
