import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import date
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Today, today_provider
from app.core.config import Settings
from app.core.errors import InvalidRequest, StorageUnavailable
from app.models.appointment import Appointment, AppointmentStatus, BookingRequest, DayAvailability
from app.services.availability import AvailabilityResolver
from app.services.booking_ledger import BookingLedger
from app.services.slot_catalog import SlotCatalog

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Surface driver/ORM failures as StorageUnavailable; domain errors pass through."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("Storage failure during %s: %s", operation, e)
        raise StorageUnavailable(f"Storage unavailable during {operation}") from e


def _validation_message(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}" for err in e.errors()
    )


class SchedulingFacade:
    """Entry point for callers: availability queries and booking lifecycle.

    Holds no state of its own; every call goes to the resolver or the ledger.
    """

    def __init__(self, resolver: AvailabilityResolver, ledger: BookingLedger) -> None:
        self._resolver = resolver
        self._ledger = ledger

    @classmethod
    def build(
        cls,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings,
        today: Today | None = None,
    ) -> "SchedulingFacade":
        """Wire catalog, ledger and resolver from settings."""
        catalog = SlotCatalog.from_settings(settings)
        today = today or today_provider(settings.scheduling_timezone)
        ledger = BookingLedger(session_maker, catalog, today)
        resolver = AvailabilityResolver(catalog, ledger, today, max_range_days=settings.max_range_days)
        return cls(resolver, ledger)

    async def get_available_slots(self, resource_id: str, d: date) -> list[str]:
        with _storage_errors("availability lookup"):
            return await self._resolver.get_available_slots(resource_id, d)

    async def get_day_availability(self, resource_id: str, d: date) -> DayAvailability:
        with _storage_errors("availability lookup"):
            return await self._resolver.get_day_availability(resource_id, d)

    async def get_range_availability(
        self, resource_id: str, start_date: date, end_date: date
    ) -> list[DayAvailability]:
        with _storage_errors("availability lookup"):
            return await self._resolver.get_range_availability(resource_id, start_date, end_date)

    async def book_appointment(self, request: BookingRequest | Mapping[str, Any]) -> Appointment:
        try:
            req = BookingRequest.model_validate(request)
        except ValidationError as e:
            raise InvalidRequest(_validation_message(e)) from e
        with _storage_errors("booking"):
            return await self._ledger.book_appointment(
                req.resource_id,
                req.customer_id,
                req.date,
                req.slot,
                notes=req.notes,
                service_type=req.service_type,
                service_request_id=req.service_request_id,
            )

    async def update_status(self, appointment_id: int, new_status: AppointmentStatus | str) -> Appointment:
        try:
            status = AppointmentStatus(new_status)
        except ValueError as e:
            raise InvalidRequest(f"Unknown status {new_status!r}") from e
        with _storage_errors("status update"):
            return await self._ledger.update_status(appointment_id, status)

    async def cancel_appointment(self, appointment_id: int) -> Appointment:
        with _storage_errors("cancellation"):
            return await self._ledger.cancel_appointment(appointment_id)

    async def get_appointment(self, appointment_id: int) -> Appointment:
        with _storage_errors("appointment lookup"):
            return await self._ledger.get_appointment(appointment_id)

    async def list_appointments(
        self,
        resource_id: str | None = None,
        customer_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        include_inactive: bool = True,
    ) -> list[Appointment]:
        with _storage_errors("appointment listing"):
            return await self._ledger.list_appointments(
                resource_id=resource_id,
                customer_id=customer_id,
                start_date=start_date,
                end_date=end_date,
                include_inactive=include_inactive,
            )
