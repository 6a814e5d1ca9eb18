"""Clock used for timestamps, shift lookup and calendar-day bucketing."""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from carelog.core.errors import ValidationError


class Clock:
    """Supplies "now" and "today" in one fixed zone.

    Calendar days are derived once, at write time, through this zone so that a
    record never moves between days when the host timezone changes.
    """

    def __init__(self, tz: str = "UTC", now_fn: Callable[[], datetime] | None = None):
        try:
            self.tz = ZoneInfo(tz)
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Unknown timezone: {tz}") from e
        self._now_fn = now_fn

    def now(self) -> datetime:
        if self._now_fn is None:
            return datetime.now(self.tz)
        return self.localize(self._now_fn())

    def today(self) -> str:
        return self.now().date().isoformat()

    def localize(self, when: datetime) -> datetime:
        """Express ``when`` in the clock's zone. Naive values are taken as local."""
        if when.tzinfo is None:
            return when.replace(tzinfo=self.tz)
        return when.astimezone(self.tz)

    def day_of(self, when: datetime) -> str:
        return self.localize(when).date().isoformat()
