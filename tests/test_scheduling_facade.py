import asyncio
from datetime import timedelta

import pytest

from app.core.config import Settings
from app.core.db import build_engine, build_session_maker
from app.core.errors import (
    InvalidDate,
    InvalidRequest,
    NotFound,
    SlotConflict,
    StorageUnavailable,
    UnknownSlot,
)
from app.models.appointment import Appointment, AppointmentStatus, BookingRequest
from app.services.scheduling import SchedulingFacade

from tests.conftest import TODAY, booking


class TestBooking:
    async def test_book_from_mapping(self, facade):
        a = await facade.book_appointment(booking("10:00", notes="AC not cooling"))
        assert a.status == AppointmentStatus.PENDING
        assert a.notes == "AC not cooling"
        assert "10:00" not in await facade.get_available_slots("tech1", TODAY)

    async def test_service_reference_passes_through(self, facade):
        a = await facade.book_appointment(
            booking("10:00", service_type="electrical", service_request_id="sr-7")
        )
        stored = await facade.get_appointment(a.id)
        assert (stored.service_type, stored.service_request_id) == ("electrical", "sr-7")

    async def test_book_from_model_and_iso_date(self, facade):
        req = BookingRequest.model_validate(booking("11:00", d=TODAY.isoformat()))
        a = await facade.book_appointment(req)
        assert a.appointment_date == TODAY

    @pytest.mark.parametrize(
        "payload",
        [
            booking(resource_id="  "),
            booking(customer_id=""),
            booking(slot="10am"),
            booking(slot="25:00"),
            booking(d="not-a-date"),
            {"resource_id": "tech1", "date": TODAY, "slot": "10:00"},
        ],
    )
    async def test_malformed_request(self, facade, payload):
        with pytest.raises(InvalidRequest):
            await facade.book_appointment(payload)

    async def test_ledger_errors_pass_through(self, facade):
        with pytest.raises(InvalidDate):
            await facade.book_appointment(booking(d=TODAY - timedelta(days=1)))
        with pytest.raises(UnknownSlot):
            await facade.book_appointment(booking("10:15"))
        await facade.book_appointment(booking("10:00"))
        with pytest.raises(SlotConflict):
            await facade.book_appointment(booking("10:00", customer_id="cust2"))

    async def test_conflict_is_distinguishable_from_input_errors(self, facade):
        await facade.book_appointment(booking("10:00"))
        with pytest.raises(SlotConflict) as conflict:
            await facade.book_appointment(booking("10:00"))
        with pytest.raises(UnknownSlot) as bad_input:
            await facade.book_appointment(booking("10:10"))
        assert conflict.value.code == "slot_conflict"
        assert bad_input.value.code == "unknown_slot"
        assert conflict.value.status_code == 409
        assert bad_input.value.status_code == 422

    async def test_concurrent_identical_requests(self, facade):
        results = await asyncio.gather(
            *[facade.book_appointment(booking("14:00", customer_id=f"c{i}")) for i in range(10)],
            return_exceptions=True,
        )
        assert sum(isinstance(r, Appointment) for r in results) == 1
        assert sum(isinstance(r, SlotConflict) for r in results) == 9
        assert "14:00" not in await facade.get_available_slots("tech1", TODAY)


class TestLifecycle:
    async def test_cancel_then_rebook(self, facade):
        a = await facade.book_appointment(booking("10:00"))
        cancelled = await facade.cancel_appointment(a.id)
        assert cancelled.status == AppointmentStatus.CANCELLED
        assert "10:00" in await facade.get_available_slots("tech1", TODAY)
        again = await facade.book_appointment(booking("10:00", customer_id="cust2"))
        assert again.status == AppointmentStatus.PENDING

    async def test_update_status_accepts_strings(self, facade):
        a = await facade.book_appointment(booking("10:00"))
        updated = await facade.update_status(a.id, "confirmed")
        assert updated.status == AppointmentStatus.CONFIRMED

    async def test_update_status_unknown_value(self, facade):
        a = await facade.book_appointment(booking("10:00"))
        with pytest.raises(InvalidRequest):
            await facade.update_status(a.id, "rescheduled")

    async def test_missing_appointment(self, facade):
        with pytest.raises(NotFound):
            await facade.cancel_appointment(12345)
        with pytest.raises(NotFound):
            await facade.get_appointment(12345)

    async def test_list_appointments(self, facade):
        await facade.book_appointment(booking("10:00"))
        await facade.book_appointment(booking("10:00", resource_id="tech2", customer_id="cust2"))
        assert len(await facade.list_appointments()) == 2
        mine = await facade.list_appointments(customer_id="cust2")
        assert [a.resource_id for a in mine] == ["tech2"]


class TestStorageFailures:
    async def test_missing_schema_surfaces_as_storage_unavailable(self, tmp_path, today):
        # No init_db: every query hits a missing table
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            facade = SchedulingFacade.build(build_session_maker(engine), Settings(), today=today)
            with pytest.raises(StorageUnavailable):
                await facade.get_available_slots("tech1", TODAY)
            with pytest.raises(StorageUnavailable):
                await facade.book_appointment(booking("10:00"))
        finally:
            await engine.dispose()

    async def test_validation_still_runs_before_storage(self, tmp_path, today):
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            facade = SchedulingFacade.build(build_session_maker(engine), Settings(), today=today)
            with pytest.raises(InvalidDate):
                await facade.book_appointment(booking(d=TODAY - timedelta(days=3)))
            assert await facade.get_available_slots("tech1", TODAY - timedelta(days=3)) == []
        finally:
            await engine.dispose()


class TestBuild:
    async def test_build_from_settings(self, session_maker, today):
        settings = Settings(slot_day_start="09:00", slot_day_end="11:00", slot_interval_minutes=60)
        facade = SchedulingFacade.build(session_maker, settings, today=today)
        assert await facade.get_available_slots("tech1", TODAY) == ["09:00", "10:00"]
