"""Lead model type definitions for database operations."""

from datetime import datetime
from typing import Any, Literal, TypedDict

LeadStatus = Literal["complete", "abandoned"]


class LeadRow(TypedDict):
    """Lead table row representation.

    Each row is one append-only submission fact. ``payload`` holds the
    camelCase JSON document returned by the leads endpoint.
    """

    id: str
    status: LeadStatus
    email: str
    created_at: datetime
    payload: dict[str, Any]


class LeadInsert(TypedDict):
    """Data written when appending a lead."""

    id: str
    status: LeadStatus
    email: str
    created_at: str
    payload: dict[str, Any]
