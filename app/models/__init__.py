from app.models.appointment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
    DayAvailability,
    SlotInfo,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "DayAvailability",
    "SlotInfo",
]
