"""Deterministic slot source for local development (EHR_USE_MOCK=true). No network."""
import json
from datetime import datetime, time

from caresync.services.ehr.types import ProviderScheduleRequest, ScheduleSlot

# Half-hour grid 9:00-16:30; every third slot is a 60-minute block
_MOCK_DAY_START_HOUR = 9
_MOCK_DAY_SLOT_COUNT = 16


class MockEhrClient:
    def get_provider_schedule(self, request: ProviderScheduleRequest) -> list[ScheduleSlot]:
        if request.date.weekday() >= 5:
            return []
        slots = []
        for i in range(_MOCK_DAY_SLOT_COUNT):
            minutes = _MOCK_DAY_START_HOUR * 60 + i * 30
            slots.append(
                ScheduleSlot(
                    start_time=time(minutes // 60, minutes % 60),
                    length_minutes=60 if i % 3 == 0 else 30,
                    available_openings=0 if i % 5 == 4 else 1,
                )
            )
        return slots

    def find_appointments(self, start_time: datetime, end_time: datetime) -> str:
        return json.dumps(
            {
                "resourceType": "Bundle",
                "type": "searchset",
                "total": 0,
                "entry": [],
                "meta": {"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
            }
        )
