"""
Domain models for provider schedules, bookings and slot queries.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidSlotRequestError

DEFAULT_DURATION_MINUTES = 30

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

STATUS_PENDING_PAYMENT = "PENDING_PAYMENT"
STATUS_ACTIVE = "ACTIVE"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

BOOKING_STATUSES = (
    STATUS_PENDING_PAYMENT,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)


def weekday_name(day: date) -> str:
    """Return the English weekday name for a calendar date."""
    return WEEKDAY_NAMES[day.weekday()]


def normalize_weekday(name: str) -> str:
    """Map a weekday name in any capitalisation onto its canonical form."""
    candidate = name.strip().capitalize()
    if candidate not in WEEKDAY_NAMES:
        raise ValueError(f"Unknown weekday name: {name!r}")
    return candidate


def parse_status(value: str) -> str:
    """Map a booking status in any capitalisation onto its canonical form."""
    status = value.strip().upper()
    if status not in BOOKING_STATUSES:
        raise ValueError(
            f"Unknown booking status: {value!r}. Expected one of {', '.join(BOOKING_STATUSES)}"
        )
    return status


def parse_iso_date(value: Union[str, date]) -> date:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    Dates and datetimes are reduced to a plain calendar date. Anything else
    raises ``InvalidSlotRequestError``.
    """
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise InvalidSlotRequestError(f"Date must be a YYYY-MM-DD string, got {value!r}")

    try:
        parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD")
    except ValueError as exc:
        raise InvalidSlotRequestError(f"Invalid date {value!r}: expected YYYY-MM-DD") from exc
    return date(parsed.year, parsed.month, parsed.day)


def parse_duration(value: Union[int, str, None], default: int = DEFAULT_DURATION_MINUTES) -> int:
    """
    Validate a requested duration in minutes.

    Accepts positive integers and their decimal string form. ``None`` yields
    the default.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidSlotRequestError("Duration must be a positive number of minutes")

    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidSlotRequestError(f"Duration must be a positive number of minutes, got {value!r}")
        value = int(text)

    if not isinstance(value, int) or value <= 0:
        raise InvalidSlotRequestError(f"Duration must be a positive number of minutes, got {value!r}")
    return value


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Half-open overlap test; ranges that only touch do not overlap."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class DailyWindow:
    """
    Working hours applied uniformly to every working weekday.

    Invariant: start must be before end.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Window start {self.start} must be before window end {self.end}")

    @classmethod
    def from_strings(cls, start: str, end: str) -> "DailyWindow":
        """Build a window from ``HH:MM`` strings."""
        return cls(start=parse_time_of_day(start), end=parse_time_of_day(end))

    def on(self, day: date, timezone: str) -> TimeRange:
        """Project the window onto a calendar date in the given timezone."""
        start = pendulum.datetime(
            day.year, day.month, day.day,
            self.start.hour, self.start.minute,
            tz=timezone,
        )
        end = pendulum.datetime(
            day.year, day.month, day.day,
            self.end.hour, self.end.minute,
            tz=timezone,
        )
        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid time of day {value!r}: expected HH:MM") from exc


@dataclass(frozen=True)
class WeeklySchedule:
    """The set of weekdays on which a provider works."""
    days: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "WeeklySchedule":
        return cls(days=frozenset(normalize_weekday(name) for name in names))

    def includes(self, day: date) -> bool:
        return weekday_name(day) in self.days


@dataclass(frozen=True)
class LeaveSet:
    """Specific calendar dates on which a provider takes no appointments."""
    dates: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_iterable(cls, values: Iterable[Union[str, date]]) -> "LeaveSet":
        return cls(dates=frozenset(parse_iso_date(value) for value in values))

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, date):
            return False
        return date(day.year, day.month, day.day) in self.dates


@dataclass(frozen=True)
class Booking:
    """
    An existing reservation with a provider.

    Records without a duration occupy ``DEFAULT_DURATION_MINUTES``.
    """
    start: DateTime
    duration_minutes: Optional[int] = None
    provider_id: Optional[int] = None
    booking_id: Optional[int] = None
    status: str = STATUS_ACTIVE
    pet_id: Optional[int] = None

    def __post_init__(self):
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError(f"Booking duration cannot be negative, got {self.duration_minutes}")
        if self.status not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {self.status!r}")

    @property
    def effective_duration(self) -> int:
        return self.duration_minutes or DEFAULT_DURATION_MINUTES

    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.start.add(minutes=self.effective_duration))


@dataclass(frozen=True)
class SlotRequest:
    """Query parameters for a slot lookup."""
    target_date: date
    duration_minutes: int = DEFAULT_DURATION_MINUTES

    @classmethod
    def parse(
        cls,
        target_date: Union[str, date],
        duration_minutes: Union[int, str, None] = None,
        default_duration: int = DEFAULT_DURATION_MINUTES,
    ) -> "SlotRequest":
        """
        Validate raw caller input.

        Raises:
            InvalidSlotRequestError: If the date cannot be parsed or the
                duration is not a positive integer.
        """
        duration = parse_duration(duration_minutes, default=default_duration)
        return cls(target_date=parse_iso_date(target_date), duration_minutes=duration)


@dataclass(frozen=True)
class SlotResult:
    """
    Bookable start times for one provider and date.

    ``note`` explains an empty result for display (leave day, day off).
    """
    slots: Tuple[DateTime, ...] = ()
    note: Optional[str] = None

    def iso_slots(self) -> List[str]:
        return [slot.isoformat() for slot in self.slots]

    def __len__(self) -> int:
        return len(self.slots)
