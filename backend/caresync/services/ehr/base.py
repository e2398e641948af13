"""Protocol for slot sources. The sync engine only ever talks to the EHR through this."""
from datetime import datetime
from typing import Protocol

from caresync.services.ehr.types import ProviderScheduleRequest, ScheduleSlot


class SlotSource(Protocol):
    """EHR HTTP client, mock client, or a test fake. Same contract; only fetch differs."""

    def get_provider_schedule(self, request: ProviderScheduleRequest) -> list[ScheduleSlot]:
        """Slots for one provider/department/date (optionally one visit type). Raises EhrError."""
        ...

    def find_appointments(self, start_time: datetime, end_time: datetime) -> str:
        """
        Open appointments across all providers/departments between two instants.
        Returns the serialized response, which callers cache verbatim. Raises EhrError.
        """
        ...
