import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_facade
from app.api.schemas.appointment import ErrorResponse, StatusUpdateRequest
from app.models.appointment import AppointmentPublic, BookingRequest
from app.services.scheduling import SchedulingFacade

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def book_appointment(
    body: BookingRequest,
    facade: SchedulingFacade = Depends(get_facade),
) -> AppointmentPublic:
    appointment = await facade.book_appointment(body)
    return AppointmentPublic.from_row(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_appointments(
    resource_id: str | None = Query(None),
    customer_id: str | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    active_only: bool = Query(False),
    facade: SchedulingFacade = Depends(get_facade),
) -> list[AppointmentPublic]:
    appointments = await facade.list_appointments(
        resource_id=resource_id,
        customer_id=customer_id,
        start_date=from_date,
        end_date=to_date,
        include_inactive=not active_only,
    )
    return [AppointmentPublic.from_row(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentPublic, responses=_ERRORS)
async def get_appointment(
    appointment_id: int,
    facade: SchedulingFacade = Depends(get_facade),
) -> AppointmentPublic:
    return AppointmentPublic.from_row(await facade.get_appointment(appointment_id))


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic, responses=_ERRORS)
async def update_status(
    appointment_id: int,
    body: StatusUpdateRequest,
    facade: SchedulingFacade = Depends(get_facade),
) -> AppointmentPublic:
    appointment = await facade.update_status(appointment_id, body.status)
    return AppointmentPublic.from_row(appointment)


@router.delete("/{appointment_id}", response_model=AppointmentPublic, responses=_ERRORS)
async def cancel_appointment(
    appointment_id: int,
    facade: SchedulingFacade = Depends(get_facade),
) -> AppointmentPublic:
    appointment = await facade.cancel_appointment(appointment_id)
    logger.info("Cancelled appointment %s via API", appointment_id)
    return AppointmentPublic.from_row(appointment)
