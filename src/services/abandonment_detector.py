"""Debounced capture of abandoned quotes.

Once a visitor has entered an email, every wizard edit re-arms a quiet-period
timer. If the timer expires without another edit, the latest snapshot is sent
to the lead store as an abandoned quote. A re-armed or cancelled timer never
sends anything, even if its task wakes before the cancellation lands: each
timer carries the generation it was armed with and only the current
generation may fire.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from src.schemas.quote import QuoteResult, Submission, WizardSnapshot
from src.services.lead_store_service import generate_abandoned_id

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD_SECONDS = 2.0


class LeadSink(Protocol):
    """Anything that can append a submission fact."""

    async def append(self, submission: Submission) -> str: ...


class AbandonmentDetector:
    """Debounced watcher that records abandoned quotes."""

    def __init__(self, lead_store: LeadSink, quiet_period: float = DEFAULT_QUIET_PERIOD_SECONDS) -> None:
        """Initialize the detector.

        Args:
            lead_store: Destination for abandoned submissions.
            quiet_period: Seconds without edits before a capture is sent.
        """
        self.lead_store = lead_store
        self.quiet_period = quiet_period
        self._generation = 0
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """Whether a capture is armed and has not fired yet."""
        return self._timer is not None and not self._timer.done()

    def schedule(self, snapshot: WizardSnapshot) -> None:
        """Arm (or re-arm) the timer for a snapshot.

        Must be called from a running event loop.
        """
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_capture(self._generation, snapshot))

    def cancel(self) -> None:
        """Drop any armed capture. Captures already being sent are not affected."""
        self._generation += 1
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def drain(self) -> None:
        """Wait for captures that have already fired to finish sending."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the armed timer and wait for in-flight captures."""
        self.cancel()
        await self.drain()

    async def _wait_then_capture(self, generation: int, snapshot: WizardSnapshot) -> None:
        await asyncio.sleep(self.quiet_period)
        if generation != self._generation:
            return

        self._timer = None
        task = asyncio.get_running_loop().create_task(self._capture(snapshot))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _capture(self, snapshot: WizardSnapshot) -> None:
        submission = Submission.from_draft(
            snapshot.draft,
            QuoteResult(rate=snapshot.rate, breakdown=snapshot.breakdown),
            submission_id=generate_abandoned_id(),
            status="abandoned",
            created_at=datetime.now(timezone.utc),
            abandoned_step=snapshot.step,
        )
        try:
            await self.lead_store.append(submission)
            logger.info("Captured abandoned quote %s at step %d", submission.id, snapshot.step)
        except Exception as e:
            logger.warning("Error capturing abandoned lead %s: %s", submission.id, str(e))
