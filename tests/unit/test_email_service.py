"""Unit tests for email service."""

import asyncio
import time
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.schemas.quote import QuoteDraft, Submission
from src.services.email_service import (
    EmailService,
    NotificationMessage,
    format_breakdown_line,
    melbourne_timestamp,
)
from src.services.rate_calculator import compute_rate


@pytest.fixture
def email_service() -> EmailService:
    """Email service with Resend treated as configured."""
    service = EmailService()
    service.is_configured = True
    return service


@pytest.fixture
def submission() -> Submission:
    draft = QuoteDraft(
        email="owner@pharmacy.com.au",
        phone="0400 000 000",
        suburb="Box Hill",
        travel_time_minutes=35,
        scripts_per_day=220,
        tech_quality="good",
        pharmacy_name="Box Hill <Central> Pharmacy",
        contact_preference="phone",
    )
    return Submission.from_draft(
        draft,
        compute_rate(draft),
        submission_id="quote_1735689600000_abc123xyz",
        status="complete",
        created_at=datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc),
    )


class TestFormatting:
    """Tests for formatting helpers."""

    def test_breakdown_line_signs(self) -> None:
        assert format_breakdown_line("Good Tech Support", Decimal("-5")) == "  Good Tech Support: -$5"
        assert format_breakdown_line("Travel Time (45-55 min)", Decimal("12.5")) == "  Travel Time (45-55 min): +$12.50"

    def test_zero_value_reads_base(self) -> None:
        assert format_breakdown_line("Anything", Decimal("0")) == "  Anything: Base"

    def test_melbourne_timestamp(self) -> None:
        # 1 Jan 2025 00:00 UTC is 11:00 AEDT
        assert melbourne_timestamp(datetime(2025, 1, 1, tzinfo=timezone.utc)) == "01/01/2025, 11:00:00 AM"


class TestSend:
    """Tests for EmailService.send."""

    @pytest.mark.asyncio
    async def test_not_configured(self, mock_resend_send: MagicMock) -> None:
        service = EmailService()
        service.is_configured = False

        result = await service.send(NotificationMessage(to="a@b.co", subject="s", html="h", text="t"))

        assert result == {"success": False, "error": "Email service not configured"}
        mock_resend_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_success(self, email_service: EmailService, mock_resend_send: MagicMock) -> None:
        message = NotificationMessage(to="a@b.co", subject="Hello", html="<p>h</p>", text="h", reply_to="c@d.co")

        result = await email_service.send(message)

        assert result == {"success": True, "email_id": "email-123"}
        params = mock_resend_send.call_args.args[0]
        assert params["to"] == ["a@b.co"]
        assert params["subject"] == "Hello"
        assert params["reply_to"] == "c@d.co"
        assert params["from"] == email_service.from_email

    @pytest.mark.asyncio
    async def test_send_without_reply_to(self, email_service: EmailService, mock_resend_send: MagicMock) -> None:
        await email_service.send(NotificationMessage(to="a@b.co", subject="s", html="h", text="t"))

        assert "reply_to" not in mock_resend_send.call_args.args[0]

    @pytest.mark.asyncio
    async def test_send_failure_is_reported(self, email_service: EmailService, mock_resend_send: MagicMock) -> None:
        mock_resend_send.side_effect = Exception("Resend API error")

        result = await email_service.send(NotificationMessage(to="a@b.co", subject="s", html="h", text="t"))

        assert result["success"] is False
        assert "Resend API error" in result["error"]

    @pytest.mark.asyncio
    async def test_slow_relay_does_not_block_event_loop(
        self, email_service: EmailService, mock_resend_send: MagicMock
    ) -> None:
        mock_resend_send.side_effect = lambda params: time.sleep(0.4) or {"id": "email-slow"}
        ticks: list[float] = []

        async def ticker() -> None:
            for _ in range(6):
                ticks.append(time.monotonic())
                await asyncio.sleep(0.05)

        result, _ = await asyncio.gather(
            email_service.send(NotificationMessage(to="a@b.co", subject="s", html="h", text="t")), ticker()
        )

        assert result == {"success": True, "email_id": "email-slow"}
        assert max(later - earlier for earlier, later in zip(ticks, ticks[1:])) < 0.25


class TestQuoteNotification:
    """Tests for the completed-quote notification."""

    def test_subject_and_recipient(self, email_service: EmailService, submission: Submission) -> None:
        message = email_service.build_quote_notification(submission)

        assert message.subject == "New Quote Request - $85/hr - Box Hill"
        assert message.to == email_service.recipient
        assert message.reply_to == "owner@pharmacy.com.au"

    def test_text_body(self, email_service: EmailService, submission: Submission) -> None:
        message = email_service.build_quote_notification(submission)

        assert "CALCULATED RATE: $85/hr" in message.text
        assert "High Script Volume (200-250): +$10" in message.text
        assert "Good Tech Support: -$5" in message.text
        assert "Phone: 0400 000 000" in message.text
        assert "Preferred Contact: phone" in message.text
        assert '"id": "quote_1735689600000_abc123xyz"' in message.text
        assert "Submitted: 01/01/2025, 11:00:00 AM" in message.text

    def test_html_body_is_escaped(self, email_service: EmailService, submission: Submission) -> None:
        message = email_service.build_quote_notification(submission)

        assert "Box Hill &lt;Central&gt; Pharmacy" in message.html
        assert "<Central>" not in message.html

    def test_missing_optional_details(self, email_service: EmailService) -> None:
        draft = QuoteDraft(email="owner@pharmacy.com.au", suburb="Kew")
        submission = Submission.from_draft(
            draft,
            compute_rate(draft),
            submission_id="quote_1_x",
            status="complete",
            created_at=datetime.now(timezone.utc),
        )

        message = email_service.build_quote_notification(submission)

        assert "Name: Not provided" in message.text
        assert "Phone: Not provided" in message.text

    @pytest.mark.asyncio
    async def test_send_quote_notification(
        self, email_service: EmailService, submission: Submission, mock_resend_send: MagicMock
    ) -> None:
        result = await email_service.send_quote_notification(submission)

        assert result["success"] is True
        assert mock_resend_send.call_args.args[0]["subject"].startswith("New Quote Request")


class TestContactEnquiry:
    """Tests for the contact-form enquiry email."""

    @pytest.mark.asyncio
    async def test_enquiry_email(self, email_service: EmailService, mock_resend_send: MagicMock) -> None:
        result = await email_service.send_contact_enquiry("Sam", "sam@example.com", "Line one\n<b>Line two</b>")

        assert result["success"] is True
        params = mock_resend_send.call_args.args[0]
        assert params["subject"] == "New Service Enquiry from Sam"
        assert params["reply_to"] == "sam@example.com"
        assert "Line one<br>&lt;b&gt;Line two&lt;/b&gt;" in params["html"]
        assert "Line one\n<b>Line two</b>" in params["text"]
