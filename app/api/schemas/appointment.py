from datetime import date

from pydantic import BaseModel

from app.models.appointment import AppointmentStatus


class AvailableSlotsResponse(BaseModel):
    resource_id: str
    date: date
    slots: list[str]  # "HH:MM", ascending


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus


class ErrorResponse(BaseModel):
    detail: str
    code: str
