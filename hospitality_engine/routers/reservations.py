"""
Reservation Endpoints

Creating a reservation is the authoritative step: the resource row is locked,
availability is re-checked inside the transaction and a conflict is a 409.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.reservation import ReservationCreate, ReservationResponse
from ..services.errors import EngineError
from ..services.records import EngineConfig
from ..services.reservation_service import ReservationService
from ..utils.dependencies import get_engine_config, http_error
from ..utils.rate_limiter import get_rate_limit, limiter

router = APIRouter(prefix="/api/reservations", tags=["Reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("reservation_create"))
async def create_reservation(
    request: Request,
    payload: ReservationCreate,
    db: Session = Depends(get_db),
    config: EngineConfig = Depends(get_engine_config)
):
    service = ReservationService(db, config)
    try:
        row = service.commit(
            payload.resource.to_record(),
            payload.window(),
            guest_count=payload.guest_count,
            guest_name=payload.guest_name,
            layout_style=payload.layout_style,
            rooms=payload.rooms,
            plan_selections=payload.selections(),
            meals=payload.meals,
            status=payload.status.value,
        )
    except EngineError as e:
        raise http_error(e)
    return row


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
@limiter.limit(get_rate_limit("reservation_update"))
async def cancel_reservation(
    request: Request,
    reservation_id: str,
    db: Session = Depends(get_db)
):
    """Cancel a reservation; it stops blocking inventory but is kept"""
    try:
        return ReservationService(db).cancel(reservation_id)
    except EngineError as e:
        raise http_error(e)


@router.post("/{reservation_id}/complete", response_model=ReservationResponse)
@limiter.limit(get_rate_limit("reservation_update"))
async def complete_reservation(
    request: Request,
    reservation_id: str,
    db: Session = Depends(get_db)
):
    try:
        return ReservationService(db).complete(reservation_id)
    except EngineError as e:
        raise http_error(e)
