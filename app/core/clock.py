from collections.abc import Callable
from datetime import UTC, date, datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import InvalidConfiguration

Today = Callable[[], date]


def today_provider(timezone: str = "UTC") -> Today:
    """Return a callable giving the current calendar date in ``timezone``."""
    tz: tzinfo
    if timezone.upper() == "UTC":
        tz = UTC
    else:
        try:
            tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidConfiguration(f"Unknown scheduling timezone {timezone!r}") from e

    def today() -> date:
        return datetime.now(tz).date()

    return today
