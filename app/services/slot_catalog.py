from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from app.core.config import Settings
from app.core.errors import InvalidConfiguration
from app.models.appointment import HHMM_PATTERN


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for an "HH:MM" string."""
    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise InvalidConfiguration(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class SlotConfig:
    start: str = "08:00"
    end: str = "18:00"  # exclusive
    interval_minutes: int = 30

    def validate(self) -> None:
        start = parse_hhmm(self.start)
        end = parse_hhmm(self.end) if self.end != "24:00" else 24 * 60
        if start >= end:
            raise InvalidConfiguration(f"Slot start {self.start} must be before end {self.end}")
        if self.interval_minutes <= 0:
            raise InvalidConfiguration(f"Slot interval must be > 0, got {self.interval_minutes}")
        if (end - start) % self.interval_minutes:
            raise InvalidConfiguration(
                f"Interval of {self.interval_minutes} min does not evenly divide "
                f"{self.start}-{self.end}"
            )


def generate_slots(config: SlotConfig) -> list[str]:
    """Ordered slot start times ("HH:MM") in [start, end)."""
    config.validate()
    day = datetime(2000, 1, 1)
    current = day + timedelta(minutes=parse_hhmm(config.start))
    end = day + timedelta(minutes=24 * 60 if config.end == "24:00" else parse_hhmm(config.end))
    delta = timedelta(minutes=config.interval_minutes)
    slots: list[str] = []
    while current < end:
        slots.append(current.strftime("%H:%M"))
        current += delta
    return slots


class SlotCatalog:
    """Canonical slots per day template.

    Weekdays use ``default`` unless listed in ``overrides``; ``closed_weekdays`` have no
    slots at all. All templates are generated (and validated) up front.
    """

    def __init__(
        self,
        default: SlotConfig,
        overrides: Mapping[int, SlotConfig] | None = None,
        closed_weekdays: Iterable[int] = (),
    ) -> None:
        overrides = dict(overrides or {})
        closed = frozenset(closed_weekdays)
        for weekday in (*overrides, *closed):
            if weekday not in range(7):
                raise InvalidConfiguration(f"Weekday must be 0-6 (Monday=0), got {weekday}")
        default_slots = generate_slots(default)
        self._by_weekday: dict[int, tuple[str, ...]] = {}
        self._widths: dict[int, int] = {}
        for weekday in range(7):
            config = overrides.get(weekday, default)
            if weekday in closed:
                self._by_weekday[weekday] = ()
            elif weekday in overrides:
                self._by_weekday[weekday] = tuple(generate_slots(config))
            else:
                self._by_weekday[weekday] = tuple(default_slots)
            self._widths[weekday] = config.interval_minutes
        self._lookup = {wd: frozenset(slots) for wd, slots in self._by_weekday.items()}

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlotCatalog":
        try:
            overrides = settings.weekday_overrides
            closed = settings.closed_weekdays_set
        except ValueError as e:
            raise InvalidConfiguration(f"Malformed weekday settings: {e}") from e
        default = SlotConfig(settings.slot_day_start, settings.slot_day_end, settings.slot_interval_minutes)
        return cls(
            default,
            overrides={
                wd: SlotConfig(start, end, settings.slot_interval_minutes)
                for wd, (start, end) in overrides.items()
            },
            closed_weekdays=closed,
        )

    def slots_for(self, d: date) -> list[str]:
        return list(self._by_weekday[d.weekday()])

    def contains(self, d: date, slot: str) -> bool:
        return slot in self._lookup[d.weekday()]

    def slot_end(self, d: date, slot: str) -> str:
        return format_hhmm(parse_hhmm(slot) + self._widths[d.weekday()])
