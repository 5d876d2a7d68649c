"""Quote wizard state machine.

The wizard walks a visitor through nine steps. Each step is a ``WizardStep``
with a guard that names what is missing before the visitor may continue.
Every mutation goes through ``QuoteWizard._commit``, which recomputes the
rate, persists the draft and re-arms abandonment capture in one call, so the
displayed rate and the stored draft never lag behind the edit.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from src.schemas.quote import QuoteDraft, QuoteResult, WizardSnapshot
from src.services.abandonment_detector import AbandonmentDetector
from src.services.draft_store import DraftStore, InMemoryDraftStore
from src.services.quote_constants import travel_time_for_suburb
from src.services.rate_calculator import compute_rate, estimate_shift_total
from src.services.submission_pipeline import SubmissionInProgressError, SubmissionPipeline

logger = logging.getLogger(__name__)

Guard = Callable[[QuoteDraft], str | None]


@dataclass(frozen=True)
class WizardStep:
    """One wizard step and the condition for leaving it forwards."""

    number: int
    name: str
    guard: Guard

    def rejection(self, draft: QuoteDraft) -> str | None:
        """Return why the step cannot advance, or None if it can."""
        return self.guard(draft)


def _no_guard(draft: QuoteDraft) -> str | None:
    return None


def _requires(attribute: str, message: str) -> Guard:
    def guard(draft: QuoteDraft) -> str | None:
        return None if getattr(draft, attribute) else message

    return guard


def _final_step(draft: QuoteDraft) -> str | None:
    return "This is the last step. Submit your quote to finish."


STEPS: tuple[WizardStep, ...] = (
    WizardStep(1, "contact", _requires("email", "Please enter your email to continue")),
    WizardStep(2, "location", _requires("suburb", "Please select a suburb to continue")),
    WizardStep(3, "notice", _no_guard),
    WizardStep(4, "scripts", _no_guard),
    WizardStep(5, "tech_support", _requires("tech_quality", "Please select your tech support quality to continue")),
    WizardStep(6, "ost_volume", _requires("ost_volume", "Please select your OST volume to continue")),
    WizardStep(7, "daa_complexity", _requires("daa_complexity", "Please select your DAA complexity to continue")),
    WizardStep(8, "compounding", _requires("compounding", "Please select your compounding requirements to continue")),
    WizardStep(9, "summary", _final_step),
)
FIRST_STEP = STEPS[0].number
FINAL_STEP = STEPS[-1].number


class WizardValidationError(Exception):
    """The wizard refused a transition; ``reason`` tells the visitor what to fix."""

    def __init__(self, step: int, reason: str) -> None:
        self.step = step
        self.reason = reason
        super().__init__(reason)


class QuoteWizard:
    """Owns one visitor's draft and drives it through the intake steps."""

    def __init__(
        self,
        draft_store: DraftStore | None = None,
        pipeline: SubmissionPipeline | None = None,
        abandonment: AbandonmentDetector | None = None,
        *,
        draft: QuoteDraft | None = None,
        step: int = FIRST_STEP,
    ) -> None:
        """Initialize a wizard.

        Args:
            draft_store: Where snapshots are persisted after each mutation.
            pipeline: Submission pipeline used by ``submit``.
            abandonment: Optional abandonment detector. When set, mutations
                must happen inside a running event loop.
            draft: Starting draft; defaults to a fresh one.
            step: Starting step.
        """
        self.draft_store = draft_store or InMemoryDraftStore()
        self.pipeline = pipeline
        self.abandonment = abandonment
        self._draft = draft or QuoteDraft()
        self._step = step
        self._result = compute_rate(self._draft)
        self._submitted = False

    @classmethod
    def resume(
        cls,
        draft_store: DraftStore,
        pipeline: SubmissionPipeline | None = None,
        abandonment: AbandonmentDetector | None = None,
    ) -> "QuoteWizard":
        """Rebuild a wizard from a stored draft, or start fresh if there is none."""
        snapshot = draft_store.load_draft()
        if snapshot is None:
            return cls(draft_store, pipeline, abandonment)

        logger.info("Resuming quote draft %s at step %d", draft_store.key, snapshot.step)
        return cls(draft_store, pipeline, abandonment, draft=snapshot.draft, step=snapshot.step)

    @property
    def draft(self) -> QuoteDraft:
        return self._draft

    @property
    def step(self) -> int:
        return self._step

    @property
    def current_step(self) -> WizardStep:
        return STEPS[self._step - 1]

    @property
    def result(self) -> QuoteResult:
        return self._result

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def submitting(self) -> bool:
        return self.pipeline is not None and self.pipeline.in_flight

    def snapshot(self) -> WizardSnapshot:
        """Return the current state as an immutable snapshot."""
        blocked_reason = None
        if self._step < FINAL_STEP:
            blocked_reason = self.current_step.rejection(self._draft)

        return WizardSnapshot(
            draft=self._draft,
            step=self._step,
            step_name=self.current_step.name,
            rate=self._result.rate,
            breakdown=self._result.breakdown,
            blocked_reason=blocked_reason,
            shift_total=estimate_shift_total(self._result, self._draft),
            submitted=self._submitted,
            submitting=self.submitting,
            timestamp=datetime.now(timezone.utc),
        )

    def update(self, **changes: Any) -> WizardSnapshot:
        """Apply field changes to the draft.

        Args:
            **changes: Draft fields by attribute name.

        Returns:
            WizardSnapshot: State after the edit.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        self._ensure_editable()
        draft = QuoteDraft.model_validate({**self._draft.model_dump(), **changes})
        return self._commit(draft=draft)

    def select_suburb(self, suburb: str) -> WizardSnapshot:
        """Choose a suburb and take its travel time from the suburb table."""
        return self.update(suburb=suburb, travel_time_minutes=travel_time_for_suburb(suburb))

    def advance(self) -> WizardSnapshot:
        """Move to the next step if the current step's guard passes.

        Raises:
            WizardValidationError: If the current step is incomplete or final.
        """
        self._ensure_editable()
        reason = self.current_step.rejection(self._draft)
        if reason is not None:
            logger.debug("Advance from step %d rejected: %s", self._step, reason)
            raise WizardValidationError(self._step, reason)
        return self._commit(step=self._step + 1)

    def retreat(self) -> WizardSnapshot:
        """Move back one step. Does nothing on the first step."""
        self._ensure_editable()
        if self._step == FIRST_STEP:
            return self.snapshot()
        return self._commit(step=self._step - 1)

    def reset(self) -> WizardSnapshot:
        """Discard the draft and start again from step one."""
        if self.submitting:
            raise SubmissionInProgressError()

        if self.abandonment is not None:
            self.abandonment.cancel()
        self.draft_store.clear_draft()

        self._draft = QuoteDraft()
        self._step = FIRST_STEP
        self._result = compute_rate(self._draft)
        self._submitted = False
        return self.snapshot()

    async def submit(self) -> str:
        """Submit the finished quote.

        On success the wizard is marked submitted and the stored draft is
        cleared. On failure the step and draft are kept so the visitor can
        retry.

        Returns:
            str: The submission id.

        Raises:
            WizardValidationError: If the wizard is not on the final step or an
                earlier step has been left incomplete.
            SubmissionInProgressError: If a submit is already in flight.
            SubmissionError: If the lead store rejected the quote.
        """
        self._ensure_editable()
        if self._step != FINAL_STEP:
            raise WizardValidationError(self._step, "Please complete every step before submitting")
        # Edits on the summary step can clear answers given earlier
        for step in STEPS[:-1]:
            reason = step.rejection(self._draft)
            if reason is not None:
                raise WizardValidationError(step.number, reason)
        if self.pipeline is None:
            raise RuntimeError("QuoteWizard was created without a submission pipeline")

        # A visitor who is submitting has not abandoned the quote
        if self.abandonment is not None:
            self.abandonment.cancel()

        try:
            submission_id = await self.pipeline.submit(self._draft, self._result)
        except SubmissionInProgressError:
            raise
        except Exception:
            self._sync_abandonment(self.snapshot())
            raise

        self._submitted = True
        self.draft_store.clear_draft()
        logger.info("Quote %s submitted at %s/hr", submission_id, self._result.rate)
        return submission_id

    def _ensure_editable(self) -> None:
        if self._submitted:
            raise WizardValidationError(self._step, "This quote has already been submitted. Start a new quote to continue.")
        if self.submitting:
            raise SubmissionInProgressError()

    def _commit(self, draft: QuoteDraft | None = None, step: int | None = None) -> WizardSnapshot:
        if draft is not None:
            self._draft = draft
        if step is not None:
            self._step = step
        self._result = compute_rate(self._draft)

        snapshot = self.snapshot()
        self.draft_store.save_draft(snapshot)
        self._sync_abandonment(snapshot)
        return snapshot

    def _sync_abandonment(self, snapshot: WizardSnapshot) -> None:
        if self.abandonment is None:
            return
        if snapshot.draft.email and not self._submitted:
            self.abandonment.schedule(snapshot)
        else:
            self.abandonment.cancel()
