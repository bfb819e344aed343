import re
from datetime import UTC, date, datetime
from enum import Enum

from pydantic import field_validator
from sqlalchemy import Column, Index, String, text
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS}
)
TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})

_ACTIVE_SQL = "status IN ('pending', 'confirmed', 'in_progress')"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one active appointment per (resource, date, slot)
        Index(
            "uq_appointments_active_slot",
            "resource_id",
            "appointment_date",
            "slot",
            unique=True,
            sqlite_where=text(_ACTIVE_SQL),
            postgresql_where=text(_ACTIVE_SQL),
        ),
    )
    id: int | None = Field(default=None, primary_key=True)
    resource_id: str = Field(index=True)
    customer_id: str = Field(index=True)
    appointment_date: date = Field(index=True)
    slot: str = Field(sa_column=Column(String(5), nullable=False))  # "HH:MM"
    status: AppointmentStatus = Field(
        default=AppointmentStatus.PENDING,
        sa_column=Column(
            SAEnum(
                AppointmentStatus,
                native_enum=False,
                length=20,
                values_callable=lambda e: [m.value for m in e],
            ),
            nullable=False,
        ),
    )
    service_type: str | None = Field(default=None, index=True)
    service_request_id: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=utc_naive_now)
    updated_at: datetime = Field(default_factory=utc_naive_now)


class BookingRequest(SQLModel):
    resource_id: str
    customer_id: str
    date: date
    slot: str  # "HH:MM"
    notes: str | None = None
    service_type: str | None = None
    service_request_id: str | None = None

    @field_validator("resource_id", "customer_id")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("slot")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        if not HHMM_PATTERN.match(v):
            raise ValueError("slot must be an HH:MM time")
        return v


class AppointmentPublic(SQLModel):
    id: int
    resource_id: str
    customer_id: str
    date: date
    slot: str
    status: AppointmentStatus
    notes: str | None = None
    service_type: str | None = None
    service_request_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, a: Appointment) -> "AppointmentPublic":
        return cls(
            id=a.id,
            resource_id=a.resource_id,
            customer_id=a.customer_id,
            date=a.appointment_date,
            slot=a.slot,
            status=a.status,
            notes=a.notes,
            service_type=a.service_type,
            service_request_id=a.service_request_id,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )


class SlotInfo(SQLModel):
    start: str
    end: str
    available: bool


class DayAvailability(SQLModel):
    resource_id: str
    date: date
    slots: list[SlotInfo]
