from datetime import timedelta

import pytest

from app.core.config import Settings
from app.core.errors import InvalidConfiguration
from app.services.slot_catalog import SlotCatalog, SlotConfig, generate_slots

from tests.conftest import TODAY


class TestGenerateSlots:
    def test_default_business_day(self):
        slots = generate_slots(SlotConfig("08:00", "18:00", 30))
        assert len(slots) == 20
        assert slots[0] == "08:00"
        assert slots[-1] == "17:30"

    def test_slots_are_strictly_ascending(self):
        slots = generate_slots(SlotConfig("07:15", "12:00", 15))
        assert slots == sorted(slots)
        assert len(set(slots)) == len(slots)

    def test_hourly_interval(self):
        assert generate_slots(SlotConfig("09:00", "12:00", 60)) == ["09:00", "10:00", "11:00"]

    def test_deterministic(self):
        config = SlotConfig("09:00", "10:30", 30)
        assert generate_slots(config) == generate_slots(config) == ["09:00", "09:30", "10:00"]

    def test_end_of_day(self):
        assert generate_slots(SlotConfig("23:00", "24:00", 30)) == ["23:00", "23:30"]

    @pytest.mark.parametrize(
        "config",
        [
            SlotConfig("18:00", "08:00", 30),
            SlotConfig("09:00", "09:00", 30),
            SlotConfig("09:00", "17:00", 0),
            SlotConfig("09:00", "17:00", -30),
            SlotConfig("09:00", "10:00", 25),
            SlotConfig("9am", "17:00", 30),
            SlotConfig("09:00", "25:00", 30),
        ],
    )
    def test_invalid_configuration(self, config):
        with pytest.raises(InvalidConfiguration):
            generate_slots(config)


class TestSlotCatalog:
    def test_closed_weekday_has_no_slots(self, catalog):
        sunday = TODAY + timedelta(days=6)
        assert sunday.weekday() == 6
        assert catalog.slots_for(sunday) == []
        assert not catalog.contains(sunday, "10:00")

    def test_weekday_override(self):
        catalog = SlotCatalog(
            SlotConfig("08:00", "18:00", 30),
            overrides={5: SlotConfig("09:00", "11:00", 30)},
        )
        saturday = TODAY + timedelta(days=5)
        assert catalog.slots_for(saturday) == ["09:00", "09:30", "10:00", "10:30"]
        assert len(catalog.slots_for(TODAY)) == 20

    def test_contains(self, catalog):
        assert catalog.contains(TODAY, "08:00")
        assert catalog.contains(TODAY, "17:30")
        assert not catalog.contains(TODAY, "18:00")
        assert not catalog.contains(TODAY, "08:15")

    def test_slot_end(self, catalog):
        assert catalog.slot_end(TODAY, "09:30") == "10:00"
        assert catalog.slot_end(TODAY, "17:30") == "18:00"

    def test_slots_for_returns_a_copy(self, catalog):
        catalog.slots_for(TODAY).clear()
        assert len(catalog.slots_for(TODAY)) == 20

    def test_invalid_override_fails_at_construction(self):
        with pytest.raises(InvalidConfiguration):
            SlotCatalog(SlotConfig(), overrides={5: SlotConfig("13:00", "09:00", 30)})

    def test_invalid_weekday(self):
        with pytest.raises(InvalidConfiguration):
            SlotCatalog(SlotConfig(), closed_weekdays={7})


class TestFromSettings:
    def test_settings_templates(self):
        settings = Settings(
            slot_day_start="09:00",
            slot_day_end="12:00",
            slot_interval_minutes=60,
            closed_weekdays="6",
            weekday_hours="5=10:00-11:00",
        )
        catalog = SlotCatalog.from_settings(settings)
        assert catalog.slots_for(TODAY) == ["09:00", "10:00", "11:00"]
        assert catalog.slots_for(TODAY + timedelta(days=5)) == ["10:00"]
        assert catalog.slots_for(TODAY + timedelta(days=6)) == []

    def test_malformed_weekday_settings(self):
        with pytest.raises(InvalidConfiguration):
            SlotCatalog.from_settings(Settings(closed_weekdays="sunday"))

    def test_bad_interval_in_settings(self):
        with pytest.raises(InvalidConfiguration):
            SlotCatalog.from_settings(Settings(slot_interval_minutes=45))
