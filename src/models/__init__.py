"""Database model type definitions."""

from src.models.lead import LeadInsert, LeadRow, LeadStatus

__all__ = [
    "LeadInsert",
    "LeadRow",
    "LeadStatus",
]
