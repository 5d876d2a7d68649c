"""Lead store backed by a Supabase table.

Every submission fact is an independent append. Nothing here reads a record
back to modify it, so abandoned and completed facts from the same visitor
never interfere.
"""

import asyncio
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.models.lead import LeadInsert
from src.schemas.quote import Submission

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase
ID_SUFFIX_LENGTH = 9
ABANDONED_ID_PREFIX = "abandoned_"

# Newest-first ordering uses the first timestamp present on a lead
SORT_TIMESTAMP_KEYS = ("completedAt", "abandonedAt", "submittedAt", "createdAt", "timestamp")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def generate_submission_id() -> str:
    """Generate an opaque quote id such as ``quote_1735689600000_k3j9x0a1b``."""
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"quote_{int(time.time() * 1000)}_{suffix}"


def generate_abandoned_id() -> str:
    """Generate an id for an abandoned-quote fact."""
    return f"{ABANDONED_ID_PREFIX}{generate_submission_id()}"


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def lead_sort_key(lead: dict[str, Any]) -> datetime:
    """Return the timestamp a lead is ordered by, falling back to the epoch."""
    for key in SORT_TIMESTAMP_KEYS:
        parsed = _parse_timestamp(lead.get(key))
        if parsed:
            return parsed
    return EPOCH


class LeadStoreService:
    """Service for appending and listing quote leads."""

    def __init__(self) -> None:
        """Initialize lead store with the Supabase client."""
        self.client = get_supabase_client()
        self.table_name = get_settings().leads_table

    async def append(self, submission: Submission) -> str:
        """Append a submission fact.

        Args:
            submission: The complete or abandoned submission to store.

        Returns:
            str: The stored submission id.
        """
        row: LeadInsert = {
            "id": submission.id,
            "status": submission.status,
            "email": submission.email,
            "created_at": submission.created_at.isoformat(),
            "payload": submission.to_record(),
        }

        # The Supabase SDK blocks; run it off the event loop
        await asyncio.to_thread(self.client.table(self.table_name).insert(row).execute)

        logger.info("Stored %s lead %s", submission.status, submission.id)
        return submission.id

    async def list_leads(self) -> list[dict[str, Any]]:
        """List all stored leads, newest first.

        Returns:
            list: Lead documents in their stored camelCase form.
        """
        response = await asyncio.to_thread(self.client.table(self.table_name).select("id, payload").execute)

        leads = []
        for row in response.data or []:
            lead = dict(row.get("payload") or {})
            lead["id"] = row["id"]
            leads.append(lead)

        leads.sort(key=lead_sort_key, reverse=True)
        return leads


def get_lead_store_service() -> LeadStoreService:
    """Create a lead store service bound to the shared Supabase client."""
    return LeadStoreService()
