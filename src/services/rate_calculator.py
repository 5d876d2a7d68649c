"""Hourly rate calculation for locum quotes.

The calculator is a pure function of the draft: it is called after every
wizard edit, so it must accept partially filled drafts and never raise for
missing selections.
"""

from decimal import ROUND_HALF_UP, Decimal

from src.schemas.quote import BreakdownItem, QuoteDraft, QuoteResult
from src.services.quote_constants import (
    BASE_RATE,
    HOLIDAY_SURCHARGE_RATE,
    MAX_RATE,
    MIN_RATE,
    RATE_INCREMENT,
    SHORT_NOTICE_FEE,
)

CENT = Decimal("0.01")

# Script volumes in [150, 200) are priced together with tech quality
FOLDED_SCRIPTS_LOW = 150
FOLDED_SCRIPTS_HIGH = 200

FOLDED_TECH_ADJUSTMENTS: dict[str, tuple[str, Decimal]] = {
    "poor": ("Scripts 150-200 with Poor Tech", Decimal("15")),
    "average": ("Scripts 150-200 with Average Tech", Decimal("5")),
}

TECH_ADJUSTMENTS: dict[str, tuple[str, Decimal]] = {
    "poor": ("Poor Tech Support", Decimal("10")),
    "good": ("Good Tech Support", Decimal("-5")),
    "excellent": ("Excellent Tech Support (2+ techs)", Decimal("-10")),
}

OST_ADJUSTMENTS: dict[str, tuple[str, Decimal]] = {
    "medium": ("OST Volume (5-20/day)", Decimal("5")),
    "high": ("OST Volume (>20/day)", Decimal("10")),
}

DAA_ADJUSTMENTS: dict[str, tuple[str, Decimal]] = {
    "moderate": ("Moderate DAA Changes", Decimal("5")),
    "complex": ("Complex DAA Management", Decimal("10")),
}

COMPOUNDING_ADJUSTMENTS: dict[str, tuple[str, Decimal]] = {
    "regular": ("Regular Compounding", Decimal("5")),
    "complex": ("Complex Compounding", Decimal("10")),
}

# (lower bound inclusive, upper bound, upper inclusive, label, adjustment)
TRAVEL_BRACKETS: tuple[tuple[int, int, bool, str, Decimal], ...] = (
    (25, 35, False, "Travel Time (25-35 min)", Decimal("5")),
    (35, 45, False, "Travel Time (35-45 min)", Decimal("10")),
    (45, 55, True, "Travel Time (45-55 min)", Decimal("12.5")),
)

BASE_RATE_LABEL = "Base Rate"
HOLIDAY_LABEL = "Public Holiday Surcharge (10%)"
SHORT_NOTICE_LABEL = "Short Notice Fee (<24hrs) - Flat"


def clamp_and_round(rate: Decimal) -> Decimal:
    """Clamp a rate to [MIN_RATE, MAX_RATE] and snap it to the rate increment.

    Rounding is half-up on the quotient, so 86.875 (69.5 increments) becomes
    87.50.
    """
    clamped = max(MIN_RATE, min(MAX_RATE, rate))
    increments = (clamped / RATE_INCREMENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return increments * RATE_INCREMENT


def _lookup(table: dict[str, tuple[str, Decimal]], option: str | None) -> BreakdownItem | None:
    if option is None or option not in table:
        return None
    label, value = table[option]
    return BreakdownItem(label=label, value=value)


def _in_folded_script_range(scripts_per_day: int) -> bool:
    return FOLDED_SCRIPTS_LOW <= scripts_per_day < FOLDED_SCRIPTS_HIGH


def _script_volume_item(draft: QuoteDraft) -> BreakdownItem | None:
    scripts = draft.scripts_per_day
    if scripts < 120:
        return BreakdownItem(label="Low Script Volume (0-120)", value=Decimal("-5"))
    if 200 <= scripts < 250:
        return BreakdownItem(label="High Script Volume (200-250)", value=Decimal("10"))
    if scripts >= 250:
        return BreakdownItem(label="Very High Script Volume (250+)", value=Decimal("15"))
    if _in_folded_script_range(scripts):
        return _lookup(FOLDED_TECH_ADJUSTMENTS, draft.tech_quality)
    return None


def _tech_quality_item(draft: QuoteDraft) -> BreakdownItem | None:
    # Already priced by the script bracket inside the folded range
    if _in_folded_script_range(draft.scripts_per_day):
        return None
    return _lookup(TECH_ADJUSTMENTS, draft.tech_quality)


def _travel_item(draft: QuoteDraft) -> BreakdownItem | None:
    minutes = draft.travel_time_minutes
    for low, high, high_inclusive, label, value in TRAVEL_BRACKETS:
        if minutes >= low and (minutes <= high if high_inclusive else minutes < high):
            return BreakdownItem(label=label, value=value)
    return None


def compute_rate(draft: QuoteDraft) -> QuoteResult:
    """Compute the hourly rate and itemised breakdown for a draft.

    Workload adjustments are summed onto the base rate, which is then clamped
    and rounded. The public holiday surcharge (10% of that rounded rate) and
    the flat short-notice fee are added afterwards, followed by a second
    clamp and round. The second pass can trim part of either add-on.

    Args:
        draft: Current quote draft, possibly incomplete.

    Returns:
        QuoteResult: Rate to the cent and the ordered breakdown.
    """
    rate = BASE_RATE
    breakdown = [BreakdownItem(label=BASE_RATE_LABEL, value=BASE_RATE)]

    adjustments = (
        _script_volume_item(draft),
        _tech_quality_item(draft),
        _lookup(OST_ADJUSTMENTS, draft.ost_volume),
        _lookup(DAA_ADJUSTMENTS, draft.daa_complexity),
        _lookup(COMPOUNDING_ADJUSTMENTS, draft.compounding),
        _travel_item(draft),
    )
    for item in adjustments:
        if item is not None:
            breakdown.append(item)
            rate += item.value

    rate = clamp_and_round(rate)

    if draft.is_public_holiday:
        surcharge = (rate * HOLIDAY_SURCHARGE_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
        breakdown.append(BreakdownItem(label=HOLIDAY_LABEL, value=surcharge))
        rate += surcharge

    if draft.short_notice == "within24hrs":
        breakdown.append(BreakdownItem(label=SHORT_NOTICE_LABEL, value=SHORT_NOTICE_FEE, is_flat=True))
        rate += SHORT_NOTICE_FEE

    # TODO: confirm with the business whether the second pass should be allowed
    # to trim the holiday surcharge and short-notice fee.
    rate = clamp_and_round(rate)

    return QuoteResult(rate=rate.quantize(CENT), breakdown=tuple(breakdown))


def estimate_shift_total(result: QuoteResult, draft: QuoteDraft) -> Decimal | None:
    """Estimate the cost of the planned shift at the quoted hourly rate.

    The short-notice fee is already part of the rate and is not added again.
    """
    if draft.shift_hours is None:
        return None
    return (result.rate * draft.shift_hours).quantize(CENT, rounding=ROUND_HALF_UP)
