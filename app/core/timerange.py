"""Time arithmetic for appointment slots.

All scheduling happens in the clinic timezone (``TIMEZONE``). Slot timestamps
are stored naive as clinic wall time, so booking-form times are taken as-is
and aware values from clients are converted into that zone first. Audit
stamps (``created_at``, ``cancelled_at``, ...) are naive UTC.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config import settings
from app.core.exceptions import ValidationException

DEFAULT_DURATION_MINUTES = 60


def utcnow() -> datetime:
    """Naive UTC now, used for every audit timestamp."""
    return datetime.now(UTC).replace(tzinfo=None)


def normalize_timestamp(value: datetime) -> datetime:
    """Clinic wall time of ``value``; naive values already are."""
    if value.tzinfo is not None:
        return value.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    return value


def parse_wall_time(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock time."""
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError as e:
        raise ValidationException(
            "Horário inválido, use o formato HH:MM",
            details={"appointment_time": value},
        ) from e


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationException(
                "Appointment must end after it starts",
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @classmethod
    def from_duration(cls, start: datetime, duration_minutes: int) -> "TimeRange":
        """Build the slot occupied by an appointment."""
        if duration_minutes <= 0:
            raise ValidationException(
                "Duration must be a positive number of minutes",
                details={"duration_minutes": duration_minutes},
            )
        start = normalize_timestamp(start)
        return cls(start, start + timedelta(minutes=duration_minutes))

    @classmethod
    def from_date_and_time(
        cls,
        day: date,
        wall_time: str,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> "TimeRange":
        """Combine a booking-form date and ``HH:MM`` time into a slot."""
        return cls.from_duration(datetime.combine(day, parse_wall_time(wall_time)), duration_minutes)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Standard half-open overlap; touching endpoints do not overlap."""
        return self.start < other.end and other.start < self.end
