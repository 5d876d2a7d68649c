"""Unit tests for the quote wizard state machine."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from src.schemas.quote import QuoteDraft
from src.services.draft_store import InMemoryDraftStore
from src.services.quote_wizard import FINAL_STEP, STEPS, QuoteWizard, WizardValidationError
from src.services.submission_pipeline import SubmissionError, SubmissionInProgressError, SubmissionPipeline


def walk_to_summary(wizard: QuoteWizard) -> None:
    """Fill in every required field and advance to the summary step."""
    wizard.update(email="owner@pharmacy.com.au")
    wizard.advance()
    wizard.select_suburb("Box Hill")
    wizard.advance()
    wizard.advance()
    wizard.advance()
    wizard.update(tech_quality="good")
    wizard.advance()
    wizard.update(ost_volume="medium")
    wizard.advance()
    wizard.update(daa_complexity="stable")
    wizard.advance()
    wizard.update(compounding="none")
    wizard.advance()


@pytest.fixture
def lead_store() -> AsyncMock:
    store = AsyncMock()
    store.append.side_effect = lambda submission: submission.id
    return store


@pytest.fixture
def notifier() -> AsyncMock:
    mailer = AsyncMock()
    mailer.send_quote_notification.return_value = {"success": True, "email_id": "email-1"}
    return mailer


@pytest.fixture
def draft_store() -> InMemoryDraftStore:
    return InMemoryDraftStore()


@pytest.fixture
def wizard(draft_store: InMemoryDraftStore, lead_store: AsyncMock, notifier: AsyncMock) -> QuoteWizard:
    return QuoteWizard(draft_store, SubmissionPipeline(lead_store, notifier))


class TestStepTable:
    """Tests for the step definitions."""

    def test_nine_numbered_steps(self) -> None:
        assert [step.number for step in STEPS] == list(range(1, 10))
        assert FINAL_STEP == 9

    def test_unguarded_steps(self) -> None:
        empty = QuoteDraft()
        assert STEPS[2].rejection(empty) is None
        assert STEPS[3].rejection(empty) is None


class TestNavigation:
    """Tests for advance and retreat."""

    def test_initial_state(self, wizard: QuoteWizard) -> None:
        snapshot = wizard.snapshot()

        assert snapshot.step == 1
        assert snapshot.step_name == "contact"
        assert snapshot.rate == Decimal("70")
        assert snapshot.blocked_reason == "Please enter your email to continue"
        assert snapshot.submitted is False

    def test_advance_without_email_is_rejected(self, wizard: QuoteWizard) -> None:
        with pytest.raises(WizardValidationError) as exc_info:
            wizard.advance()

        assert exc_info.value.step == 1
        assert "email" in exc_info.value.reason
        assert wizard.step == 1

    def test_advance_with_whitespace_email_is_rejected(self, wizard: QuoteWizard) -> None:
        wizard.update(email="   ")

        with pytest.raises(WizardValidationError):
            wizard.advance()
        assert wizard.step == 1

    def test_advance_with_any_non_empty_email(self, wizard: QuoteWizard) -> None:
        """The step 1 guard only checks presence."""
        wizard.update(email="not-an-email")

        snapshot = wizard.advance()

        assert snapshot.step == 2
        assert wizard.step == 2

    def test_retreat_from_first_step_is_noop(self, wizard: QuoteWizard, draft_store: InMemoryDraftStore) -> None:
        snapshot = wizard.retreat()

        assert snapshot.step == 1
        assert draft_store.load_draft() is None

    def test_retreat_is_unconditional(self, wizard: QuoteWizard) -> None:
        wizard.update(email="owner@pharmacy.com.au")
        wizard.advance()

        # Step 2 is incomplete but going back is always allowed
        assert wizard.retreat().step == 1

    def test_suburb_guard(self, wizard: QuoteWizard) -> None:
        wizard.update(email="owner@pharmacy.com.au")
        wizard.advance()

        with pytest.raises(WizardValidationError, match="suburb"):
            wizard.advance()

        wizard.select_suburb("Other (specify travel time)")
        assert wizard.advance().step == 3

    @pytest.mark.parametrize(
        "step,field,value",
        [
            (5, "tech_quality", "average"),
            (6, "ost_volume", "none"),
            (7, "daa_complexity", "complex"),
            (8, "compounding", "regular"),
        ],
    )
    def test_selection_guards(self, step: int, field: str, value: str) -> None:
        wizard = QuoteWizard(step=step)

        with pytest.raises(WizardValidationError):
            wizard.advance()
        assert wizard.step == step

        wizard.update(**{field: value})
        assert wizard.advance().step == step + 1

    def test_final_step_cannot_advance(self, wizard: QuoteWizard) -> None:
        walk_to_summary(wizard)

        assert wizard.step == FINAL_STEP
        assert wizard.snapshot().blocked_reason is None
        with pytest.raises(WizardValidationError):
            wizard.advance()


class TestMutations:
    """Tests for derive-on-write behaviour."""

    def test_update_recomputes_and_persists(self, wizard: QuoteWizard, draft_store: InMemoryDraftStore) -> None:
        snapshot = wizard.update(ost_volume="high", scripts_per_day=260)

        assert snapshot.rate == Decimal("95")
        stored = draft_store.load_draft()
        assert stored is not None
        assert stored.rate == snapshot.rate
        assert stored.draft.ost_volume == "high"

    def test_step_change_is_persisted(self, wizard: QuoteWizard, draft_store: InMemoryDraftStore) -> None:
        wizard.update(email="owner@pharmacy.com.au")
        wizard.advance()

        assert draft_store.load_draft().step == 2

    def test_select_suburb_sets_travel_time(self, wizard: QuoteWizard) -> None:
        snapshot = wizard.select_suburb("Glen Waverley")

        assert snapshot.draft.suburb == "Glen Waverley"
        assert snapshot.draft.travel_time_minutes == 38
        assert any(item.label == "Travel Time (35-45 min)" for item in snapshot.breakdown)

    def test_invalid_update_leaves_draft_unchanged(self, wizard: QuoteWizard) -> None:
        wizard.update(scripts_per_day=200)

        with pytest.raises(ValidationError):
            wizard.update(scripts_per_day=900)

        assert wizard.draft.scripts_per_day == 200

    def test_holiday_flag_is_derived(self, wizard: QuoteWizard) -> None:
        snapshot = wizard.update(shift_date="2025-01-27")

        assert snapshot.draft.is_public_holiday is True

    def test_shift_total(self, wizard: QuoteWizard) -> None:
        snapshot = wizard.update(shift_hours=Decimal("8"))

        assert snapshot.shift_total == Decimal("560.00")

    def test_reset(self, wizard: QuoteWizard, draft_store: InMemoryDraftStore) -> None:
        wizard.update(email="owner@pharmacy.com.au", ost_volume="high")
        wizard.advance()

        snapshot = wizard.reset()

        assert snapshot.step == 1
        assert snapshot.draft.email == ""
        assert snapshot.rate == Decimal("70")
        assert draft_store.load_draft() is None

    def test_resume_from_stored_draft(self, wizard: QuoteWizard, draft_store: InMemoryDraftStore) -> None:
        wizard.update(email="owner@pharmacy.com.au")
        wizard.advance()
        wizard.select_suburb("Kew")

        resumed = QuoteWizard.resume(draft_store)

        assert resumed.step == 2
        assert resumed.draft.suburb == "Kew"
        assert resumed.result == wizard.result

    def test_resume_without_draft_starts_fresh(self) -> None:
        resumed = QuoteWizard.resume(InMemoryDraftStore())
        assert resumed.step == 1


class TestSubmit:
    """Tests for submit."""

    @pytest.mark.asyncio
    async def test_submit_before_summary_is_rejected(self, wizard: QuoteWizard, lead_store: AsyncMock) -> None:
        wizard.update(email="owner@pharmacy.com.au")

        with pytest.raises(WizardValidationError):
            await wizard.submit()

        lead_store.append.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("changes", "failing_step"),
        [
            ({"email": ""}, 1),
            ({"suburb": ""}, 2),
            ({"tech_quality": None}, 5),
            ({"compounding": None}, 8),
            ({"suburb": "", "tech_quality": None}, 2),
        ],
    )
    async def test_submit_rechecks_every_step(
        self, wizard: QuoteWizard, lead_store: AsyncMock, changes: dict, failing_step: int
    ) -> None:
        walk_to_summary(wizard)
        wizard.update(**changes)

        with pytest.raises(WizardValidationError) as exc_info:
            await wizard.submit()

        assert exc_info.value.step == failing_step
        assert wizard.step == FINAL_STEP
        assert wizard.submitted is False
        lead_store.append.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_submit(
        self,
        wizard: QuoteWizard,
        draft_store: InMemoryDraftStore,
        lead_store: AsyncMock,
        notifier: AsyncMock,
    ) -> None:
        walk_to_summary(wizard)

        submission_id = await wizard.submit()

        assert submission_id.startswith("quote_")
        assert wizard.submitted is True
        assert wizard.snapshot().submitted is True
        assert draft_store.load_draft() is None

        submission = lead_store.append.await_args.args[0]
        assert submission.status == "complete"
        assert submission.email == "owner@pharmacy.com.au"
        assert submission.rate == wizard.result.rate
        notifier.send_quote_notification.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_submitted_wizard_rejects_edits(self, wizard: QuoteWizard) -> None:
        walk_to_summary(wizard)
        await wizard.submit()

        with pytest.raises(WizardValidationError):
            wizard.update(phone="0400000000")
        with pytest.raises(WizardValidationError):
            await wizard.submit()

    @pytest.mark.asyncio
    async def test_failed_submit_preserves_draft(
        self, wizard: QuoteWizard, draft_store: InMemoryDraftStore, lead_store: AsyncMock
    ) -> None:
        walk_to_summary(wizard)
        lead_store.append.side_effect = ConnectionError("store unavailable")

        with pytest.raises(SubmissionError) as exc_info:
            await wizard.submit()

        assert "contact@locumpharmacistmelbourne.com.au" in exc_info.value.message
        assert wizard.step == FINAL_STEP
        assert wizard.submitted is False
        assert draft_store.load_draft() is not None

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, wizard: QuoteWizard, lead_store: AsyncMock) -> None:
        walk_to_summary(wizard)
        lead_store.append.side_effect = [ConnectionError("store unavailable"), "ok"]

        with pytest.raises(SubmissionError):
            await wizard.submit()
        await wizard.submit()

        assert wizard.submitted is True
        assert lead_store.append.await_count == 2

    @pytest.mark.asyncio
    async def test_edits_blocked_while_submitting(self, wizard: QuoteWizard, lead_store: AsyncMock) -> None:
        walk_to_summary(wizard)
        release = asyncio.Event()

        async def slow_append(submission):
            await release.wait()
            return submission.id

        lead_store.append.side_effect = slow_append

        task = asyncio.create_task(wizard.submit())
        await asyncio.sleep(0)

        assert wizard.submitting is True
        with pytest.raises(SubmissionInProgressError):
            wizard.update(phone="0400000000")
        with pytest.raises(SubmissionInProgressError):
            await wizard.submit()
        with pytest.raises(SubmissionInProgressError):
            wizard.reset()

        release.set()
        await task

        assert wizard.submitting is False
        assert lead_store.append.await_count == 1


class TestAbandonmentWiring:
    """Tests for how the wizard drives the abandonment detector."""

    @pytest.fixture
    def detector(self) -> MagicMock:
        return MagicMock()

    def test_no_schedule_without_email(self, detector: MagicMock) -> None:
        wizard = QuoteWizard(abandonment=detector)

        wizard.update(scripts_per_day=200)

        detector.schedule.assert_not_called()
        detector.cancel.assert_called()

    def test_every_mutation_reschedules_with_email(self, detector: MagicMock) -> None:
        wizard = QuoteWizard(abandonment=detector)

        wizard.update(email="owner@pharmacy.com.au")
        wizard.advance()
        wizard.select_suburb("Kew")

        assert detector.schedule.call_count == 3
        latest = detector.schedule.call_args.args[0]
        assert latest.step == 2
        assert latest.draft.suburb == "Kew"

    @pytest.mark.asyncio
    async def test_submit_cancels_pending_capture(
        self, detector: MagicMock, lead_store: AsyncMock, notifier: AsyncMock
    ) -> None:
        wizard = QuoteWizard(pipeline=SubmissionPipeline(lead_store, notifier), abandonment=detector)
        walk_to_summary(wizard)
        detector.reset_mock()

        await wizard.submit()

        detector.cancel.assert_called()
        detector.schedule.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_submit_rearms_capture(
        self, detector: MagicMock, lead_store: AsyncMock, notifier: AsyncMock
    ) -> None:
        wizard = QuoteWizard(pipeline=SubmissionPipeline(lead_store, notifier), abandonment=detector)
        walk_to_summary(wizard)
        detector.reset_mock()
        lead_store.append.side_effect = ConnectionError("store unavailable")

        with pytest.raises(SubmissionError):
            await wizard.submit()

        detector.schedule.assert_called_once()

    def test_reset_cancels_capture(self, detector: MagicMock) -> None:
        wizard = QuoteWizard(abandonment=detector)
        wizard.update(email="owner@pharmacy.com.au")
        detector.reset_mock()

        wizard.reset()

        detector.cancel.assert_called_once()
