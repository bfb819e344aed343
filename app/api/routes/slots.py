from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_facade
from app.api.schemas.appointment import AvailableSlotsResponse
from app.models.appointment import DayAvailability
from app.services.scheduling import SchedulingFacade

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    resource_id: str = Query(..., min_length=1),
    date_param: date = Query(..., alias="date"),
    facade: SchedulingFacade = Depends(get_facade),
) -> AvailableSlotsResponse:
    """Free slot start times ("HH:MM") for the resource on the date; empty for past dates."""
    slots = await facade.get_available_slots(resource_id, date_param)
    return AvailableSlotsResponse(resource_id=resource_id, date=date_param, slots=slots)


@router.get("/day", response_model=DayAvailability)
async def day_availability(
    resource_id: str = Query(..., min_length=1),
    date_param: date = Query(..., alias="date"),
    facade: SchedulingFacade = Depends(get_facade),
) -> DayAvailability:
    """All slots for the date. Each slot has start, end, and available (bool)."""
    return await facade.get_day_availability(resource_id, date_param)


@router.get("/range", response_model=list[DayAvailability])
async def range_availability(
    resource_id: str = Query(..., min_length=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    facade: SchedulingFacade = Depends(get_facade),
) -> list[DayAvailability]:
    return await facade.get_range_availability(resource_id, start_date, end_date)
