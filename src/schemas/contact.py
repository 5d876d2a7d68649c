"""Schemas for the service enquiry form."""

from pydantic import BaseModel, Field


class ContactRequest(BaseModel):
    """Enquiry form body.

    Every field is optional at the schema level so that a missing field
    produces the form's own "Missing required fields" message rather than a
    generic validation error.
    """

    name: str | None = Field(default=None, description="Sender's name")
    email: str | None = Field(default=None, description="Sender's email address")
    message: str | None = Field(default=None, description="Enquiry text")

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.email and self.message)


class ContactResponse(BaseModel):
    """Single-message response used for both success and failure."""

    message: str
