"""Stateless quote routes: rate calculation and wizard reference data."""

from fastapi import APIRouter

from src.schemas.quote import QuoteDraft, QuoteReferenceResponse, RateResponse, SuburbOption
from src.services.quote_constants import (
    BASE_RATE,
    MAX_RATE,
    MIN_RATE,
    RATE_INCREMENT,
    SUBURBS,
    TOTAL_STEPS,
    VIC_PUBLIC_HOLIDAYS,
)
from src.services.rate_calculator import compute_rate, estimate_shift_total

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post(
    "/rate",
    response_model=RateResponse,
    summary="Calculate hourly rate",
    description="Computes the rate and breakdown for a draft without storing anything.",
)
async def calculate_rate(draft: QuoteDraft) -> RateResponse:
    """Calculate the rate for a (possibly partial) draft.

    Args:
        draft: Draft fields; anything omitted takes its default.

    Returns:
        RateResponse: Rate, breakdown and the shift estimate when hours are given.
    """
    result = compute_rate(draft)
    return RateResponse(
        rate=result.rate,
        breakdown=result.breakdown,
        is_public_holiday=draft.is_public_holiday,
        shift_total=estimate_shift_total(result, draft),
    )


@router.get(
    "/reference",
    response_model=QuoteReferenceResponse,
    summary="Wizard reference data",
    description="Suburbs with travel times, the public holiday calendar and rate limits.",
)
async def get_reference_data() -> QuoteReferenceResponse:
    return QuoteReferenceResponse(
        suburbs=[SuburbOption(name=s["name"], travel_time_minutes=s["time"]) for s in SUBURBS],
        public_holidays=sorted(VIC_PUBLIC_HOLIDAYS),
        base_rate=BASE_RATE,
        min_rate=MIN_RATE,
        max_rate=MAX_RATE,
        rate_increment=RATE_INCREMENT,
        total_steps=TOTAL_STEPS,
    )
