from datetime import date, timedelta

from app.core.clock import Today
from app.core.errors import InvalidRequest
from app.models.appointment import DayAvailability, SlotInfo
from app.services.booking_ledger import BookingLedger
from app.services.slot_catalog import SlotCatalog


class AvailabilityResolver:
    """Read-only view: catalog slots minus slots held by active appointments.

    Nothing is cached; every call reads the ledger's current state.
    """

    def __init__(
        self,
        catalog: SlotCatalog,
        ledger: BookingLedger,
        today: Today,
        max_range_days: int = 31,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._today = today
        self._max_range_days = max_range_days

    async def get_available_slots(self, resource_id: str, d: date) -> list[str]:
        """Free "HH:MM" slots in catalog order; empty for dates before today."""
        if d < self._today():
            return []
        slots = self._catalog.slots_for(d)
        if not slots:
            return []
        booked = await self._ledger.active_slots(resource_id, d)
        return [s for s in slots if s not in booked]

    async def get_day_availability(self, resource_id: str, d: date) -> DayAvailability:
        """Every catalog slot for the day with its end time and an available flag."""
        free = set(await self.get_available_slots(resource_id, d))
        return DayAvailability(
            resource_id=resource_id,
            date=d,
            slots=[
                SlotInfo(start=s, end=self._catalog.slot_end(d, s), available=s in free)
                for s in self._catalog.slots_for(d)
            ],
        )

    async def get_range_availability(
        self, resource_id: str, start_date: date, end_date: date
    ) -> list[DayAvailability]:
        if end_date < start_date:
            raise InvalidRequest("end_date must not be before start_date")
        days = (end_date - start_date).days + 1
        if days > self._max_range_days:
            raise InvalidRequest(f"Date range spans {days} days; maximum is {self._max_range_days}")
        return [
            await self.get_day_availability(resource_id, start_date + timedelta(days=i))
            for i in range(days)
        ]
