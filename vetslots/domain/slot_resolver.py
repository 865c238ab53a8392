"""
Core business logic for resolving bookable consultation slots.

Pure domain logic: no store access, no I/O. The caller supplies the day's
bookings; returned slots are advisory and must be re-validated when a
booking is written.
"""

import logging
from datetime import date
from typing import Iterable, Iterator, List, Optional, Union

from pendulum import DateTime

from .models import (
    DEFAULT_DURATION_MINUTES,
    Booking,
    DailyWindow,
    LeaveSet,
    SlotResult,
    TimeRange,
    WeeklySchedule,
    parse_duration,
    parse_iso_date,
    weekday_name,
)

logger = logging.getLogger(__name__)

GRID_MINUTES = 30

ON_LEAVE_NOTE = "Provider is on leave for this date"


class SlotResolver:
    """
    Computes the start times at which a consultation can begin.

    Algorithm:
    1. Validate the request (date and duration) before any other work
    2. Return an empty result when the schedule or window is missing, the
       date is a leave day, or the weekday is not worked
    3. Generate candidates on a fixed 30 minute grid from the window start
       while candidate + duration still fits inside the window
    4. Drop candidates overlapping any booking (half-open intervals, so
       back-to-back appointments are allowed)
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone

    def check_day(
        self,
        schedule: Optional[WeeklySchedule],
        window: Optional[DailyWindow],
        leave_dates: Optional[LeaveSet],
        target_date: date,
    ) -> Optional[SlotResult]:
        """
        Decide whether the provider takes appointments on the date at all.

        Returns an empty ``SlotResult`` (with a note where one applies) when
        the day is closed, or ``None`` when slots should be generated.
        """
        if schedule is None or window is None:
            return SlotResult()

        if leave_dates is not None and target_date in leave_dates:
            return SlotResult(note=ON_LEAVE_NOTE)

        if not schedule.includes(target_date):
            return SlotResult(note=f"Provider does not work on {weekday_name(target_date)}")

        return None

    def resolve(
        self,
        schedule: Optional[WeeklySchedule],
        window: Optional[DailyWindow],
        leave_dates: Optional[LeaveSet],
        existing_bookings: Iterable[Booking],
        target_date: Union[str, date],
        requested_duration_minutes: Union[int, str, None] = DEFAULT_DURATION_MINUTES,
    ) -> SlotResult:
        """
        Resolve the bookable start times for one date.

        Args:
            schedule: Weekdays the provider works, or None if unconfigured
            window: Daily working hours, or None if unconfigured
            leave_dates: Dates the provider is off
            existing_bookings: Bookings already held on the target date
            target_date: Date to resolve (date or YYYY-MM-DD string)
            requested_duration_minutes: Length of the consultation

        Returns:
            SlotResult with ascending start times and an optional note

        Raises:
            InvalidSlotRequestError: If the date or duration is invalid
        """
        duration = parse_duration(requested_duration_minutes)
        day = parse_iso_date(target_date)

        closed = self.check_day(schedule, window, leave_dates, day)
        if closed is not None:
            return closed

        busy_ranges = [booking.time_range() for booking in existing_bookings]

        slots = tuple(
            candidate
            for candidate in self._generate_candidates(window, day, duration)
            if self._is_free(candidate, duration, busy_ranges)
        )

        logger.debug(
            "Resolved %d slot(s) on %s for %d minute(s) against %d booking(s)",
            len(slots), day.isoformat(), duration, len(busy_ranges),
        )
        return SlotResult(slots=slots)

    def _generate_candidates(
        self,
        window: DailyWindow,
        day: date,
        duration_minutes: int,
    ) -> Iterator[DateTime]:
        """
        Yield grid-aligned start times whose consultation ends inside the window.

        The grid step is independent of the requested duration.
        """
        working_range = window.on(day, self.timezone)
        candidate = working_range.start

        while candidate.add(minutes=duration_minutes) <= working_range.end:
            yield candidate
            candidate = candidate.add(minutes=GRID_MINUTES)

    @staticmethod
    def _is_free(
        candidate: DateTime,
        duration_minutes: int,
        busy_ranges: List[TimeRange],
    ) -> bool:
        slot = TimeRange(start=candidate, end=candidate.add(minutes=duration_minutes))
        return not any(slot.overlaps(busy) for busy in busy_ranges)
