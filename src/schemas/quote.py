"""Quote engine Pydantic schemas for drafts, rate results and submissions."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from src.services.quote_constants import (
    DEFAULT_SCRIPTS_PER_DAY,
    MAX_SCRIPTS_PER_DAY,
    MAX_TRAVEL_TIME_MINUTES,
    TOTAL_STEPS,
    is_public_holiday,
)

# Option values offered by the wizard; None means nothing selected yet
TechQuality = Literal["poor", "average", "good", "excellent"]
OstVolume = Literal["none", "medium", "high"]
DaaComplexity = Literal["stable", "moderate", "complex"]
Compounding = Literal["none", "regular", "complex"]
ContactPreference = Literal["email", "phone", "either"]
ShortNotice = Literal["normal", "within24hrs"]
SubmissionStatus = Literal["complete", "abandoned"]

# Dollar amounts stay Decimal in Python and go out as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_OPTIONAL_FIELDS = (
    "tech_quality",
    "ost_volume",
    "daa_complexity",
    "compounding",
    "phone",
    "pharmacy_name",
    "shift_date",
    "shift_hours",
)


def _blank_to_none(value: Any) -> Any:
    """Browser forms send "" for an unselected option."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class QuoteDraft(BaseModel):
    """Working state of one quote intake session.

    Instances are immutable; the wizard replaces its draft on every edit.
    ``is_public_holiday`` is derived from ``shift_date`` and cannot be set.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    suburb: str = Field(default="", description="Selected suburb name")
    travel_time_minutes: int = Field(
        default=0,
        ge=0,
        le=MAX_TRAVEL_TIME_MINUTES,
        validation_alias=AliasChoices("travelTimeMinutes", "travelTime", "travel_time_minutes"),
        description="Travel time from the Melbourne CBD in minutes",
    )
    scripts_per_day: int = Field(
        default=DEFAULT_SCRIPTS_PER_DAY,
        ge=0,
        le=MAX_SCRIPTS_PER_DAY,
        description="Average daily prescription volume",
    )
    tech_quality: TechQuality | None = Field(default=None, description="Technician support quality")
    ost_volume: OstVolume | None = Field(default=None, description="Opiate substitution therapy doses per day")
    daa_complexity: DaaComplexity | None = Field(default=None, description="Dose administration aid complexity")
    compounding: Compounding | None = Field(default=None, description="Compounding requirements")
    email: str = Field(default="", description="Contact email address")
    phone: str | None = Field(default=None, description="Contact phone number")
    contact_preference: ContactPreference = Field(default="email", description="Preferred contact method")
    pharmacy_name: str | None = Field(default=None, description="Pharmacy name")
    shift_date: str | None = Field(default=None, description="Shift date (YYYY-MM-DD)")
    short_notice: ShortNotice = Field(default="normal", description="Booking notice period")
    shift_hours: Money | None = Field(default=None, gt=0, description="Planned shift length in hours")

    @field_validator(*_OPTIONAL_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @computed_field(alias="isPublicHoliday")  # type: ignore[prop-decorator]
    @property
    def is_public_holiday(self) -> bool:
        """Whether the shift date falls on a configured public holiday."""
        return is_public_holiday(self.shift_date)


class QuoteDraftUpdate(BaseModel):
    """Partial update for a wizard draft.

    Only fields present in the request are applied; an explicit null clears
    an optional selection.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    suburb: str | None = None
    travel_time_minutes: int | None = Field(
        default=None,
        ge=0,
        le=MAX_TRAVEL_TIME_MINUTES,
        validation_alias=AliasChoices("travelTimeMinutes", "travelTime", "travel_time_minutes"),
    )
    scripts_per_day: int | None = Field(default=None, ge=0, le=MAX_SCRIPTS_PER_DAY)
    tech_quality: TechQuality | None = None
    ost_volume: OstVolume | None = None
    daa_complexity: DaaComplexity | None = None
    compounding: Compounding | None = None
    email: str | None = None
    phone: str | None = None
    contact_preference: ContactPreference | None = None
    pharmacy_name: str | None = None
    shift_date: str | None = None
    short_notice: ShortNotice | None = None
    shift_hours: Decimal | None = Field(default=None, gt=0)

    @field_validator(*_OPTIONAL_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def changes(self) -> dict[str, Any]:
        """Return the explicitly provided fields keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class SuburbSelection(BaseModel):
    """Request body for choosing a suburb from the travel-time table."""

    suburb: str = Field(description="Suburb name as listed in the reference data")


class BreakdownItem(BaseModel):
    """One signed contribution to the quoted rate."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    label: str = Field(description="Human-readable adjustment label")
    value: Money = Field(description="Signed rate delta or flat dollar amount")
    is_flat: bool = Field(default=False, description="True for fixed-dollar add-ons")


class QuoteResult(BaseModel):
    """Rate and itemised breakdown for a draft."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    rate: Money = Field(description="Hourly rate in dollars")
    breakdown: tuple[BreakdownItem, ...] = Field(description="Ordered rate adjustments")


class WizardSnapshot(BaseModel):
    """Point-in-time view of a wizard, as persisted and returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    draft: QuoteDraft
    step: int = Field(ge=1, le=TOTAL_STEPS)
    step_name: str = ""
    rate: Money
    breakdown: tuple[BreakdownItem, ...] = ()
    blocked_reason: str | None = Field(default=None, description="Why the current step cannot advance")
    shift_total: Money | None = Field(default=None, description="Estimated cost of the planned shift")
    submitted: bool = False
    submitting: bool = False
    timestamp: datetime


class Submission(QuoteDraft):
    """Write-once lead fact derived from a draft and its rate.

    Abandoned and completed facts from one session are separate records.
    """

    id: str
    status: SubmissionStatus
    created_at: datetime
    rate: Money
    breakdown: tuple[BreakdownItem, ...] = ()
    completed_at: datetime | None = None
    abandoned_at: datetime | None = None
    abandoned_step: int | None = Field(default=None, ge=1, le=TOTAL_STEPS)

    @classmethod
    def from_draft(
        cls,
        draft: QuoteDraft,
        result: QuoteResult,
        *,
        submission_id: str,
        status: SubmissionStatus,
        created_at: datetime,
        abandoned_step: int | None = None,
    ) -> "Submission":
        """Freeze a draft and its rate into a lead fact."""
        return cls(
            **draft.model_dump(),
            id=submission_id,
            status=status,
            created_at=created_at,
            rate=result.rate,
            breakdown=result.breakdown,
            completed_at=created_at if status == "complete" else None,
            abandoned_at=created_at if status == "abandoned" else None,
            abandoned_step=abandoned_step if status == "abandoned" else None,
        )

    def to_record(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON document stored in the lead store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuoteSubmissionPayload(QuoteDraft):
    """Body accepted by the quote ingestion endpoint.

    Status is implied: a ``completedAt`` timestamp marks a completed quote,
    anything else is recorded as abandoned.
    """

    rate: Money = Field(ge=0)
    breakdown: tuple[BreakdownItem, ...] = ()
    completed_at: datetime | None = None
    abandoned_at: datetime | None = None
    abandoned_step: int | None = Field(default=None, ge=1, le=TOTAL_STEPS)

    @property
    def status(self) -> SubmissionStatus:
        return "complete" if self.completed_at is not None else "abandoned"

    def to_submission(self, submission_id: str, received_at: datetime) -> Submission:
        """Build the stored fact, keeping client timestamps when provided."""
        draft_fields = QuoteDraft.model_validate(self.model_dump(include=set(QuoteDraft.model_fields)))
        submission = Submission.from_draft(
            draft_fields,
            QuoteResult(rate=self.rate, breakdown=self.breakdown),
            submission_id=submission_id,
            status=self.status,
            created_at=received_at,
            abandoned_step=self.abandoned_step,
        )
        if self.status == "complete":
            return submission.model_copy(update={"completed_at": self.completed_at})
        return submission.model_copy(update={"abandoned_at": self.abandoned_at or received_at})


class SubmitQuoteResponse(BaseModel):
    """Acknowledgement returned by the ingestion endpoint."""

    success: bool = True
    message: str = "Quote submitted successfully"
    id: str


class LeadsResponse(BaseModel):
    """Stored leads, newest first."""

    leads: list[dict[str, Any]] = Field(default_factory=list)


class SubmissionAccepted(BaseModel):
    """Response for a successful wizard submit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    snapshot: WizardSnapshot


class RateResponse(QuoteResult):
    """Stateless rate quote for a draft."""

    is_public_holiday: bool = False
    shift_total: Money | None = None


class SuburbOption(BaseModel):
    """A suburb with its approximate travel time (None for "Other")."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    travel_time_minutes: int | None


class QuoteReferenceResponse(BaseModel):
    """Static data the wizard needs to render its options."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    suburbs: list[SuburbOption]
    public_holidays: list[str]
    base_rate: Money
    min_rate: Money
    max_rate: Money
    rate_increment: Money
    total_steps: int
