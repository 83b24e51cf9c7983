"""
Availability & Quote Endpoints

Read-only: every answer is provisional until POST /api/reservations commits it.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas.availability import (
    AvailabilityCheckRequest,
    AvailabilityResponse,
    CheckAndQuoteRequest,
    CheckAndQuoteResponse,
    QuoteRequest,
    QuoteResponse,
)
from ..services.availability_service import AvailabilityService
from ..services.errors import EngineError
from ..services.records import EngineConfig
from ..utils.dependencies import get_engine_config, http_error
from ..utils.rate_limiter import get_rate_limit, limiter

router = APIRouter(prefix="/api/availability", tags=["Availability"])


@router.post("/check", response_model=AvailabilityResponse)
@limiter.limit(get_rate_limit("availability"))
async def check_availability(
    request: Request,
    payload: AvailabilityCheckRequest,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config)
):
    """Is the room category or venue free for the requested window?"""
    service = AvailabilityService(db, config)
    try:
        resource, result = service.check(
            payload.resource.to_record(),
            payload.window(),
            guest_count=payload.guest_count,
            layout_style=payload.layout_style,
            rooms=payload.rooms,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except EngineError as e:
        raise http_error(e)
    return AvailabilityResponse.from_result(resource.id, result)


@router.post("/quote", response_model=QuoteResponse)
@limiter.limit(get_rate_limit("quote"))
async def quote_price(
    request: Request,
    payload: QuoteRequest,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config)
):
    """Itemized price for a stay or a venue slot, whether or not it is free"""
    service = AvailabilityService(db, config)
    try:
        quote = service.quote(
            payload.resource.to_record(),
            payload.window(),
            guests=payload.guests,
            rooms=payload.rooms,
            plan_selections=payload.selections(),
            meals=payload.meals,
            discount_percent=payload.discount_percent,
        )
    except EngineError as e:
        raise http_error(e)
    return QuoteResponse.from_quote(quote, settings.currency, config.currency_quantum)


@router.post("/check-and-quote", response_model=CheckAndQuoteResponse)
@limiter.limit(get_rate_limit("availability"))
async def check_and_quote(
    request: Request,
    payload: CheckAndQuoteRequest,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config)
):
    """
    Availability verdict plus its price.

    Unavailable requests are not priced. When pricing fails for an available
    request, quote is null and pricing_error explains why.
    """
    service = AvailabilityService(db, config)
    try:
        resource, outcome = service.check_and_quote(
            payload.resource.to_record(),
            payload.window(),
            guest_count=payload.guest_count,
            layout_style=payload.layout_style,
            rooms=payload.rooms,
            plan_selections=payload.selections(),
            meals=payload.meals,
            discount_percent=payload.discount_percent,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except EngineError as e:
        raise http_error(e)

    quote = None
    if outcome.quote is not None:
        quote = QuoteResponse.from_quote(outcome.quote, settings.currency, config.currency_quantum)
    return CheckAndQuoteResponse(
        availability=AvailabilityResponse.from_result(resource.id, outcome.availability),
        quote=quote,
        pricing_error=outcome.pricing_error,
    )
