"""
Provider profile as stored by the clinic backend.

Records arrive in the backend's camelCase shape, where ``availableDays`` and
``availableHours`` may still be JSON-encoded strings.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import (
    DailyWindow,
    LeaveSet,
    WeeklySchedule,
    normalize_weekday,
    parse_iso_date,
    parse_time_of_day,
)


def _decode_json_string(value: Any) -> Any:
    """Decode a JSON-encoded column value; empty strings mean unset."""
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON value: {value!r}") from exc
    return value


class WorkingHoursConfig(BaseModel):
    """Daily working hours as ``HH:MM`` strings."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return parse_time_of_day(value).strftime("%H:%M")

    @model_validator(mode="after")
    def validate_order(self) -> "WorkingHoursConfig":
        """Ensure the window opens before it closes."""
        if self.end <= self.start:
            raise ValueError("end must be later than start")
        return self

    def to_window(self) -> DailyWindow:
        return DailyWindow.from_strings(self.start, self.end)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class ProviderProfile(BaseModel):
    """A veterinary doctor's public profile and availability settings."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str
    specialization: str = ""
    fee: int = 0
    available: bool = True
    available_days: Optional[List[str]] = None
    available_hours: Optional[WorkingHoursConfig] = None
    leave_days: List[str] = Field(default_factory=list)

    @field_validator("available_days", mode="before")
    @classmethod
    def decode_available_days(cls, value: Any) -> Any:
        return _decode_json_string(value)

    @field_validator("available_days")
    @classmethod
    def validate_available_days(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Normalise weekday names and drop duplicates, keeping order."""
        if value is None:
            return None
        deduped: List[str] = []
        for name in value:
            day = normalize_weekday(name)
            if day not in deduped:
                deduped.append(day)
        return deduped

    @field_validator("available_hours", mode="before")
    @classmethod
    def decode_available_hours(cls, value: Any) -> Any:
        return _decode_json_string(value)

    @field_validator("leave_days", mode="before")
    @classmethod
    def decode_leave_days(cls, value: Any) -> Any:
        return _decode_json_string(value) or []

    @field_validator("leave_days")
    @classmethod
    def validate_leave_days(cls, value: List[str]) -> List[str]:
        """Ensure leave days are ISO dates, deduplicated in order."""
        deduped: List[str] = []
        for raw in value:
            iso = parse_iso_date(raw).isoformat()
            if iso not in deduped:
                deduped.append(iso)
        return deduped

    def schedule(self) -> Optional[WeeklySchedule]:
        if self.available_days is None:
            return None
        return WeeklySchedule.from_names(self.available_days)

    def window(self) -> Optional[DailyWindow]:
        if self.available_hours is None:
            return None
        return self.available_hours.to_window()

    def leave_set(self) -> LeaveSet:
        return LeaveSet.from_iterable(self.leave_days)

    def with_availability(
        self,
        days: Optional[List[str]] = None,
        hours: Optional[Any] = None,
        available: Optional[bool] = None,
        leave_days: Optional[List[str]] = None,
    ) -> "ProviderProfile":
        """
        Return a validated copy with the given availability fields replaced.

        Arguments left as None keep their current value.
        """
        updates: Dict[str, Any] = {}
        if days is not None:
            updates["available_days"] = days
        if hours is not None:
            updates["available_hours"] = hours.model_dump() if isinstance(hours, WorkingHoursConfig) else hours
        if available is not None:
            updates["available"] = available
        if leave_days is not None:
            updates["leave_days"] = leave_days

        return type(self).model_validate({**self.model_dump(), **updates})

    def to_record(self) -> Dict[str, Any]:
        """Serialise in the backend's camelCase shape."""
        return self.model_dump(by_alias=True)
