"""
Normalized types for EHR schedule reads.

The provider schedule endpoint returns ScheduleSlots[] with string fields, e.g.
{"StartTime": " 8:00 AM", "Length": "30", "AvailableOpenings": "1", "HeldTimeReason": ""}.
Adapters parse those into ScheduleSlot so the builder never sees raw strings.
"""
from dataclasses import dataclass
from datetime import date, datetime, time


@dataclass(frozen=True)
class ProviderScheduleRequest:
    """One schedule read: a provider in one department on one date, optionally scoped to a visit type."""
    provider_id: str
    provider_id_type: str
    department_id: str
    department_id_type: str
    date: date
    visit_type_id: str | None = None
    visit_type_id_type: str | None = None
    user_id: str | None = None
    user_id_type: str | None = None


@dataclass(frozen=True)
class ScheduleSlot:
    start_time: time
    length_minutes: int
    available_openings: int
    held_reason: str | None = None
    unavailable_reason: str | None = None

    @property
    def is_bookable(self) -> bool:
        """At least one opening and neither held nor unavailable (blank reasons count as absent)."""
        if self.available_openings <= 0:
            return False
        held = bool((self.held_reason or "").strip())
        unavailable = bool((self.unavailable_reason or "").strip())
        return not held and not unavailable


def parse_time_am_pm(value: str) -> time:
    """Parse EHR times like ' 8:00 AM' or '12:30 pm'. Raises TypeError for a missing (null) time."""
    if not isinstance(value, str):
        raise TypeError(f"Expected a time string, got {type(value).__name__}")
    return datetime.strptime(value.strip().upper(), "%I:%M %p").time()


def format_date_with_slashes(day: date) -> str:
    """EHR date parameter format, e.g. 6/8/2020."""
    return f"{day.month}/{day.day}/{day.year}"
