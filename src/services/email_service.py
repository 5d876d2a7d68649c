"""Email service using Resend for quote and contact notifications."""

import asyncio
import html
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import resend

from src.core.config import get_settings
from src.schemas.quote import Submission
from src.services.quote_constants import format_currency

logger = logging.getLogger(__name__)

MELBOURNE_TZ = ZoneInfo("Australia/Melbourne")
NOT_PROVIDED = "Not provided"


@dataclass(frozen=True)
class NotificationMessage:
    """A single outbound email."""

    to: str
    subject: str
    html: str
    text: str
    reply_to: str | None = None


def format_breakdown_line(label: str, value: Any) -> str:
    """Render one breakdown item for the plain-text notification."""
    if value == 0:
        return f"  {label}: Base"
    sign = "+" if value > 0 else "-"
    return f"  {label}: {sign}{format_currency(abs(value))}"


def melbourne_timestamp(moment: datetime | None = None) -> str:
    """Format a timestamp in Melbourne local time, e.g. 19/10/2026, 03:04:05 PM."""
    moment = moment or datetime.now(MELBOURNE_TZ)
    return moment.astimezone(MELBOURNE_TZ).strftime("%d/%m/%Y, %I:%M:%S %p")


class EmailService:
    """Service for sending notification emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.is_configured = settings.is_email_configured
        self.from_email = settings.email_from_address
        self.recipient = settings.notification_recipient

    async def send(self, message: NotificationMessage) -> dict[str, Any]:
        """Send a notification through Resend.

        Args:
            message: The email to send.

        Returns:
            dict: ``{"success": True, "email_id": ...}`` or ``{"success": False, "error": ...}``.
        """
        if not self.is_configured:
            logger.error("RESEND_API_KEY is not set")
            return {"success": False, "error": "Email service not configured"}

        params: dict[str, Any] = {
            "from": self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        if message.reply_to:
            params["reply_to"] = message.reply_to

        try:
            response = await asyncio.to_thread(resend.Emails.send, params)

            logger.info("Email '%s' sent to %s, id: %s", message.subject, message.to, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send email '%s' to %s: %s", message.subject, message.to, str(e))
            return {"success": False, "error": str(e)}

    def build_quote_notification(self, submission: Submission) -> NotificationMessage:
        """Build the internal notification for a completed quote."""
        rate = format_currency(submission.rate)
        pharmacy_name = submission.pharmacy_name or NOT_PROVIDED
        phone = submission.phone or NOT_PROVIDED
        submitted = melbourne_timestamp(submission.completed_at or submission.created_at)
        breakdown_text = "\n".join(format_breakdown_line(item.label, item.value) for item in submission.breakdown)

        text_content = f"""
New Locum Quote Request

CALCULATED RATE: {rate}/hr

Pharmacy Details:
- Name: {pharmacy_name}
- Location: {submission.suburb}
- Scripts/day: {submission.scripts_per_day}

Rate Breakdown:
{breakdown_text}

Contact Information:
- Email: {submission.email}
- Phone: {phone}
- Preferred Contact: {submission.contact_preference}

Full Details:
{json.dumps(submission.to_record(), indent=2)}

---
Submitted: {submitted}
""".strip()

        html_content = f"""
<h2>New Locum Quote Request</h2>
<h3>Calculated Rate: {rate}/hr</h3>

<h4>Pharmacy Details:</h4>
<ul>
    <li><strong>Name:</strong> {html.escape(pharmacy_name)}</li>
    <li><strong>Location:</strong> {html.escape(submission.suburb)}</li>
    <li><strong>Scripts/day:</strong> {submission.scripts_per_day}</li>
</ul>

<h4>Rate Breakdown:</h4>
<pre>{html.escape(breakdown_text)}</pre>

<h4>Contact Information:</h4>
<ul>
    <li><strong>Email:</strong> {html.escape(submission.email)}</li>
    <li><strong>Phone:</strong> {html.escape(phone)}</li>
    <li><strong>Preferred Contact:</strong> {submission.contact_preference}</li>
</ul>

<hr>
<p><small>Submitted: {submitted}</small></p>
"""

        return NotificationMessage(
            to=self.recipient,
            subject=f"New Quote Request - {rate}/hr - {submission.suburb}",
            html=html_content,
            text=text_content,
            reply_to=submission.email or None,
        )

    async def send_quote_notification(self, submission: Submission) -> dict[str, Any]:
        """Notify the business about a completed quote.

        Args:
            submission: The completed submission.

        Returns:
            dict: Result of the send.
        """
        return await self.send(self.build_quote_notification(submission))

    async def send_contact_enquiry(self, name: str, email: str, message: str) -> dict[str, Any]:
        """Forward a contact-form enquiry to the business mailbox.

        Args:
            name: Sender name.
            email: Sender email, used as reply-to.
            message: Enquiry text.

        Returns:
            dict: Result of the send.
        """
        footer = "This message was sent from the contact form on locumpharmacistmelbourne.com.au"
        escaped_message = html.escape(message).replace("\n", "<br>")

        html_content = f"""
<h2>New Service Enquiry</h2>
<p><strong>Name:</strong> {html.escape(name)}</p>
<p><strong>Email:</strong> {html.escape(email)}</p>
<p><strong>Message:</strong></p>
<p>{escaped_message}</p>
<hr>
<p><small>{footer}</small></p>
"""

        text_content = f"""
New Service Enquiry

Name: {name}
Email: {email}

Message:
{message}

---
{footer}
""".strip()

        return await self.send(
            NotificationMessage(
                to=self.recipient,
                subject=f"New Service Enquiry from {name}",
                html=html_content,
                text=text_content,
                reply_to=email,
            )
        )


def get_email_service() -> EmailService:
    """Create an email service from current settings."""
    return EmailService()
