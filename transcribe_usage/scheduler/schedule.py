"""Fixed UTC schedules for recurring jobs."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months, clamping the day."""
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, _days_in_month(year, month))
    return value.replace(year=year, month=month, day=day)


def _days_in_month(year: int, month: int) -> int:
    first_of_next = datetime(year + month // 12, month % 12 + 1, 1)
    return (first_of_next - timedelta(days=1)).day


def start_of_month(value: datetime) -> datetime:
    """Midnight UTC on the first day of ``value``'s month."""
    return value.astimezone(UTC).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def billing_period(value: datetime) -> str:
    """``YYYY-MM`` for the month containing ``value`` (UTC)."""
    return value.astimezone(UTC).strftime("%Y-%m")


@dataclass(frozen=True)
class Schedule:
    """Run at ``hour:minute`` UTC, daily or on one day of each month.

    ``day_of_month`` must be at most 28 so every month has it.
    """

    hour: int = 0
    minute: int = 0
    day_of_month: int | None = None

    def __post_init__(self) -> None:
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 28:
            raise ValueError("day_of_month must be between 1 and 28")
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError("hour/minute out of range")

    @classmethod
    def daily(cls, hour: int, minute: int = 0) -> "Schedule":
        return cls(hour=hour, minute=minute)

    @classmethod
    def monthly(cls, day_of_month: int, hour: int = 0, minute: int = 0) -> "Schedule":
        return cls(hour=hour, minute=minute, day_of_month=day_of_month)

    def next_after(self, now: datetime) -> datetime:
        """First run time strictly after ``now``."""
        now = now.astimezone(UTC)
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if self.day_of_month is None:
            if candidate <= now:
                candidate += timedelta(days=1)
            return candidate

        candidate = candidate.replace(day=self.day_of_month)
        if candidate <= now:
            candidate = add_months(candidate, 1)
        return candidate
