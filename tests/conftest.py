"""Shared test fixtures: a file-backed SQLite database per test and a fixed clock."""

from datetime import date

import pytest

from app.core.db import build_engine, build_session_maker, init_db
from app.services.availability import AvailabilityResolver
from app.services.booking_ledger import BookingLedger
from app.services.scheduling import SchedulingFacade
from app.services.slot_catalog import SlotCatalog, SlotConfig

# Monday
TODAY = date(2030, 6, 3)


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduling.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def catalog():
    # 08:00-17:30 every 30 min, Sundays closed
    return SlotCatalog(SlotConfig("08:00", "18:00", 30), closed_weekdays={6})


@pytest.fixture
def ledger(session_maker, catalog, today):
    return BookingLedger(session_maker, catalog, today)


@pytest.fixture
def resolver(catalog, ledger, today):
    return AvailabilityResolver(catalog, ledger, today, max_range_days=14)


@pytest.fixture
def facade(resolver, ledger):
    return SchedulingFacade(resolver, ledger)


def booking(slot: str = "10:00", d: date = TODAY, resource_id: str = "tech1", **kwargs) -> dict:
    """Request payload for SchedulingFacade.book_appointment."""
    payload = {
        "resource_id": resource_id,
        "customer_id": kwargs.pop("customer_id", "cust1"),
        "date": d,
        "slot": slot,
    }
    payload.update(kwargs)
    return payload
