from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./scheduling.db"
    database_ssl: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Slot catalog (day template)
    slot_day_start: str = "08:00"
    slot_day_end: str = "18:00"  # exclusive, so last slot starts at 17:30
    slot_interval_minutes: int = 30
    # Comma separated weekday numbers, Monday=0 (e.g. "6" closes Sundays)
    closed_weekdays: str = ""
    # Per-weekday hours, e.g. "5=09:00-13:00" for short Saturdays
    weekday_hours: str = ""

    # "Today" for past-date checks is evaluated in this timezone
    scheduling_timezone: str = "UTC"
    # Upper bound on days returned by the range availability view
    max_range_days: int = 31

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def closed_weekdays_set(self) -> frozenset[int]:
        return frozenset(int(d) for d in self.closed_weekdays.split(",") if d.strip())

    @property
    def weekday_overrides(self) -> dict[int, tuple[str, str]]:
        """Parse weekday_hours ("5=09:00-13:00,4=08:00-16:00") into {weekday: (start, end)}."""
        out: dict[int, tuple[str, str]] = {}
        for entry in self.weekday_hours.split(","):
            if not entry.strip():
                continue
            day, _, hours = entry.partition("=")
            start, _, end = hours.partition("-")
            out[int(day)] = (start.strip(), end.strip())
        return out


settings = Settings()
