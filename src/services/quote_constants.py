"""Pricing constants and reference data for the locum quote calculator."""

from datetime import date
from decimal import Decimal
from typing import TypedDict

BASE_RATE = Decimal("70")
MIN_RATE = Decimal("65")
MAX_RATE = Decimal("110")
RATE_INCREMENT = Decimal("1.25")

HOLIDAY_SURCHARGE_RATE = Decimal("0.10")
SHORT_NOTICE_FEE = Decimal("30")

DEFAULT_SCRIPTS_PER_DAY = 150
MAX_SCRIPTS_PER_DAY = 300
MAX_TRAVEL_TIME_MINUTES = 55

TOTAL_STEPS = 9

# localStorage key used by the browser calculator; server drafts are suffixed per session
DRAFT_STORAGE_KEY = "locum_calculator_progress"

CONTACT_EMAIL = "contact@locumpharmacistmelbourne.com.au"
SUBMISSION_FALLBACK_MESSAGE = (
    "There was an error submitting your quote. "
    f"Please email {CONTACT_EMAIL} directly."
)

VIC_PUBLIC_HOLIDAYS: frozenset[str] = frozenset(
    {
        "2025-01-01",
        "2025-01-27",
        "2025-03-10",
        "2025-04-18",
        "2025-04-19",
        "2025-04-20",
        "2025-04-21",
        "2025-04-25",
        "2025-06-09",
        "2025-11-04",
        "2025-12-25",
        "2025-12-26",
    }
)


class Suburb(TypedDict):
    """A selectable suburb with approximate travel time from the CBD."""

    name: str
    time: int | None


OTHER_SUBURB = "Other (specify travel time)"

SUBURBS: tuple[Suburb, ...] = tuple(
    sorted(
        [
            {"name": "Melbourne CBD", "time": 0},
            {"name": "Carlton", "time": 10},
            {"name": "Fitzroy", "time": 12},
            {"name": "Collingwood", "time": 15},
            {"name": "Richmond", "time": 15},
            {"name": "South Yarra", "time": 18},
            {"name": "St Kilda", "time": 20},
            {"name": "Brunswick", "time": 20},
            {"name": "Footscray", "time": 25},
            {"name": "Hawthorn", "time": 22},
            {"name": "Kew", "time": 25},
            {"name": "Preston", "time": 28},
            {"name": "Coburg", "time": 25},
            {"name": "Essendon", "time": 28},
            {"name": "Moonee Ponds", "time": 25},
            {"name": "Yarraville", "time": 28},
            {"name": "Williamstown", "time": 32},
            {"name": "Port Melbourne", "time": 20},
            {"name": "Albert Park", "time": 18},
            {"name": "Glen Waverley", "time": 38},
            {"name": "Box Hill", "time": 35},
            {"name": "Doncaster", "time": 35},
            {"name": "Camberwell", "time": 25},
            {"name": "Malvern", "time": 22},
            {"name": "Caulfield", "time": 25},
            {"name": "Bentleigh", "time": 30},
            {"name": "Brighton", "time": 28},
            {"name": "Sandringham", "time": 35},
            {"name": OTHER_SUBURB, "time": None},
        ],
        key=lambda suburb: suburb["name"].casefold(),
    )
)

SUBURB_TRAVEL_TIMES: dict[str, int | None] = {suburb["name"]: suburb["time"] for suburb in SUBURBS}


def is_public_holiday(shift_date: str | date | None) -> bool:
    """Check a shift date against the fixed public holiday calendar."""
    if not shift_date:
        return False
    if isinstance(shift_date, date):
        shift_date = shift_date.isoformat()
    return shift_date in VIC_PUBLIC_HOLIDAYS


def travel_time_for_suburb(name: str) -> int:
    """Look up the travel time for a suburb.

    Unknown suburbs and the "Other" option resolve to 0; the user enters the
    travel time for those separately.
    """
    return SUBURB_TRAVEL_TIMES.get(name) or 0


def format_currency(value: Decimal, with_symbol: bool = True) -> str:
    """Format a dollar amount, dropping cents for whole values ($85, $86.25)."""
    if value == value.to_integral_value():
        formatted = f"{value:.0f}"
    else:
        formatted = f"{value:.2f}"
    return f"${formatted}" if with_symbol else formatted
