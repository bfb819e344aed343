import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Today
from app.core.errors import InvalidDate, InvalidTransition, NotFound, SlotConflict, UnknownSlot
from app.models.appointment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    utc_naive_now,
)
from app.services.slot_catalog import SlotCatalog

logger = logging.getLogger(__name__)

SlotKey = tuple[str, date, str]

# Forward-only lifecycle; cancelled is reachable from any non-terminal status
_NEXT_STATUS = {
    AppointmentStatus.PENDING: AppointmentStatus.CONFIRMED,
    AppointmentStatus.CONFIRMED: AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.IN_PROGRESS: AppointmentStatus.COMPLETED,
}


def is_allowed_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == AppointmentStatus.CANCELLED:
        return True
    return _NEXT_STATUS.get(current) == new


class _KeyLocks:
    """One asyncio.Lock per slot key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[SlotKey, asyncio.Lock] = {}
        self._users: dict[SlotKey, int] = {}

    @asynccontextmanager
    async def hold(self, key: SlotKey) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class BookingLedger:
    """Sole writer of Appointment rows.

    Each operation runs in its own session and commits before returning, so the next
    availability query sees it. The create-if-absent step is serialized per
    (resource, date, slot) by an in-process lock; the partial unique index on active
    appointments backs it up across processes.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        catalog: SlotCatalog,
        today: Today,
    ) -> None:
        self._session_maker = session_maker
        self._catalog = catalog
        self._today = today
        self._locks = _KeyLocks()

    async def book_appointment(
        self,
        resource_id: str,
        customer_id: str,
        d: date,
        slot: str,
        notes: str | None = None,
        service_type: str | None = None,
        service_request_id: str | None = None,
    ) -> Appointment:
        if d < self._today():
            raise InvalidDate(f"Cannot book {d.isoformat()}: date is in the past")
        if not self._catalog.contains(d, slot):
            raise UnknownSlot(f"Slot {slot} is not offered on {d.isoformat()}")

        key = (resource_id, d, slot)
        async with self._locks.hold(key):
            async with self._session_maker() as session:
                if await self._occupant(session, key) is not None:
                    logger.warning("Slot conflict: resource=%s date=%s slot=%s", resource_id, d, slot)
                    raise SlotConflict(f"{slot} on {d.isoformat()} is already booked for {resource_id}")
                now = utc_naive_now()
                appointment = Appointment(
                    resource_id=resource_id,
                    customer_id=customer_id,
                    appointment_date=d,
                    slot=slot,
                    status=AppointmentStatus.PENDING,
                    notes=notes,
                    service_type=service_type,
                    service_request_id=service_request_id,
                    created_at=now,
                    updated_at=now,
                )
                session.add(appointment)
                try:
                    await session.commit()
                except IntegrityError as e:
                    # Another process won the race; the unique index rejected us
                    await session.rollback()
                    logger.warning("Slot conflict (index): resource=%s date=%s slot=%s", resource_id, d, slot)
                    raise SlotConflict(
                        f"{slot} on {d.isoformat()} is already booked for {resource_id}"
                    ) from e
        logger.info(
            "Booked appointment %s: resource=%s customer=%s date=%s slot=%s",
            appointment.id, resource_id, customer_id, d, slot,
        )
        return appointment

    async def update_status(self, appointment_id: int, new_status: AppointmentStatus) -> Appointment:
        """Move an appointment one step along its lifecycle.

        The write only lands if the row still has the status the transition was
        checked against; a concurrent writer that got there first turns this call
        into InvalidTransition instead of overwriting its result.
        """
        new_status = AppointmentStatus(new_status)
        async with self._session_maker() as session:
            appointment = await session.get(Appointment, appointment_id)
            if appointment is None:
                raise NotFound(f"Appointment {appointment_id} not found")
            current = AppointmentStatus(appointment.status)
            if not is_allowed_transition(current, new_status):
                raise InvalidTransition(
                    f"Appointment {appointment_id} cannot move from {current.value} to {new_status.value}"
                )
            stmt = (
                update(Appointment)
                .where(Appointment.id == appointment_id, Appointment.status == current)
                .values(status=new_status, updated_at=max(utc_naive_now(), appointment.updated_at))
                .execution_options(synchronize_session=False)
            )
            try:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    logger.warning(
                        "Appointment %s changed concurrently; %s -> %s rejected",
                        appointment_id, current.value, new_status.value,
                    )
                    raise InvalidTransition(
                        f"Appointment {appointment_id} is no longer {current.value}; "
                        f"cannot move to {new_status.value}"
                    )
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise InvalidTransition(
                    f"Appointment {appointment_id} cannot move from {current.value} to {new_status.value}: "
                    "slot is held by another active appointment"
                ) from e
            await session.refresh(appointment)
        logger.info("Appointment %s: %s -> %s", appointment_id, current.value, new_status.value)
        return appointment

    async def cancel_appointment(self, appointment_id: int) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.CANCELLED)

    async def get_appointment(self, appointment_id: int) -> Appointment:
        async with self._session_maker() as session:
            appointment = await session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound(f"Appointment {appointment_id} not found")
        return appointment

    async def list_appointments(
        self,
        resource_id: str | None = None,
        customer_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        include_inactive: bool = True,
    ) -> list[Appointment]:
        q = select(Appointment).order_by(Appointment.appointment_date, Appointment.slot, Appointment.id)
        if resource_id:
            q = q.where(Appointment.resource_id == resource_id)
        if customer_id:
            q = q.where(Appointment.customer_id == customer_id)
        if start_date:
            q = q.where(Appointment.appointment_date >= start_date)
        if end_date:
            q = q.where(Appointment.appointment_date <= end_date)
        if not include_inactive:
            q = q.where(Appointment.status.in_(ACTIVE_STATUSES))
        async with self._session_maker() as session:
            result = await session.execute(q)
            return list(result.scalars().all())

    async def active_slots(self, resource_id: str, d: date) -> set[str]:
        """Slot keys held by active appointments for this resource and date."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(Appointment.slot).where(
                    Appointment.resource_id == resource_id,
                    Appointment.appointment_date == d,
                    Appointment.status.in_(ACTIVE_STATUSES),
                )
            )
            return {row[0] for row in result.all()}

    @staticmethod
    async def _occupant(session: AsyncSession, key: SlotKey) -> Appointment | None:
        resource_id, d, slot = key
        result = await session.execute(
            select(Appointment).where(
                Appointment.resource_id == resource_id,
                Appointment.appointment_date == d,
                Appointment.slot == slot,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
        )
        return result.scalars().first()
