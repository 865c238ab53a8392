"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    Booking,
    DailyWindow,
    LeaveSet,
    SlotRequest,
    SlotResult,
    TimeRange,
    WeeklySchedule,
)
from .provider import ProviderProfile, WorkingHoursConfig
from .slot_resolver import GRID_MINUTES, SlotResolver

__all__ = [
    "Booking",
    "DailyWindow",
    "LeaveSet",
    "SlotRequest",
    "SlotResult",
    "TimeRange",
    "WeeklySchedule",
    "ProviderProfile",
    "WorkingHoursConfig",
    "GRID_MINUTES",
    "SlotResolver",
]
