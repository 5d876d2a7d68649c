"""Final submission of a completed quote."""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from src.schemas.quote import QuoteDraft, QuoteResult, Submission
from src.services.abandonment_detector import LeadSink
from src.services.lead_store_service import generate_submission_id
from src.services.quote_constants import SUBMISSION_FALLBACK_MESSAGE

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """A completed quote could not be stored.

    ``message`` is safe to show to the visitor and points them at the
    contact-directly fallback.
    """

    def __init__(self, message: str = SUBMISSION_FALLBACK_MESSAGE, cause: str | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class SubmissionInProgressError(SubmissionError):
    """A submit for this quote is already awaiting the lead store."""

    def __init__(self) -> None:
        super().__init__("Your quote is already being submitted.")


class QuoteNotifier(Protocol):
    """Sends the internal email for a completed quote."""

    async def send_quote_notification(self, submission: Submission) -> dict[str, Any]: ...


async def notify_completed(submission: Submission, notifier: QuoteNotifier) -> bool:
    """Send the completion email for a stored quote.

    Failures are logged only; the stored lead is never rolled back.

    Returns:
        bool: Whether the notification was accepted by the relay.
    """
    if submission.status != "complete":
        return False
    try:
        result = await notifier.send_quote_notification(submission)
    except Exception as e:
        logger.error("Error sending quote notification for %s: %s", submission.id, str(e))
        return False

    if not result.get("success"):
        logger.warning("Quote notification for %s not sent: %s", submission.id, result.get("error"))
        return False
    return True


class SubmissionPipeline:
    """Stores a completed quote and requests its notification email."""

    def __init__(self, lead_store: LeadSink, notifier: QuoteNotifier) -> None:
        """Initialize the pipeline.

        Args:
            lead_store: Destination for the completed submission.
            notifier: Notification relay for completed quotes.
        """
        self.lead_store = lead_store
        self.notifier = notifier
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        """Whether a submit is currently awaiting the lead store or relay."""
        return self._in_flight

    async def submit(self, draft: QuoteDraft, result: QuoteResult) -> str:
        """Store a completed quote.

        Args:
            draft: The finished draft.
            result: Rate result computed for the draft.

        Returns:
            str: The new submission id.

        Raises:
            SubmissionInProgressError: If a submit is already in flight.
            SubmissionError: If the lead store rejected the write.
        """
        if self._in_flight:
            raise SubmissionInProgressError()

        self._in_flight = True
        try:
            submission = Submission.from_draft(
                draft,
                result,
                submission_id=generate_submission_id(),
                status="complete",
                created_at=datetime.now(timezone.utc),
            )

            try:
                await self.lead_store.append(submission)
            except Exception as e:
                logger.error("Submission error for %s: %s", submission.id, str(e))
                raise SubmissionError(cause=str(e)) from e

            await notify_completed(submission, self.notifier)
            return submission.id
        finally:
            self._in_flight = False
