"""EHR scheduling client: lowest level, sends requests and parses schedule slots. Raises EhrError on any failure."""
import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from caresync.core.errors import EhrError
from caresync.services.ehr.config import EhrConfig
from caresync.services.ehr.types import (
    ProviderScheduleRequest,
    ScheduleSlot,
    format_date_with_slashes,
    parse_time_am_pm,
)

logger = logging.getLogger(__name__)

PROVIDER_SCHEDULE_PATH = "/api/epic/2012/Scheduling/Provider/GETPROVIDERSCHEDULE/Schedule"
APPOINTMENT_FIND_PATH = "/api/FHIR/STU3/Appointment/$find"


def _iso_instant(value: datetime) -> str:
    """ISO-8601 UTC instant truncated to seconds, e.g. 2024-03-01T05:00:00Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_schedule_slots(data: Any) -> list[ScheduleSlot]:
    """Parse ScheduleSlots[] from a provider schedule response. Raises ValueError/KeyError/TypeError on malformed slots."""
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
    raw_slots = data.get("ScheduleSlots") or []
    slots: list[ScheduleSlot] = []
    for raw in raw_slots:
        slots.append(
            ScheduleSlot(
                start_time=parse_time_am_pm(raw["StartTime"]),
                length_minutes=int(str(raw["Length"]).strip()),
                available_openings=int(str(raw["AvailableOpenings"]).strip()),
                held_reason=raw.get("HeldTimeReason"),
                unavailable_reason=raw.get("UnavailableTimeReason"),
            )
        )
    return slots


class EhrClient:
    """Provider schedule and appointment find client."""

    def __init__(self, config: EhrConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config or EhrConfig()
        self._transport = transport

    def _post(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> httpx.Response:
        url = f"{self._config.base_url}{path}"
        if not self._config.is_configured():
            raise EhrError("EHR credentials not configured. Add EHR_BASE_URL and EHR_ACCESS_TOKEN to .env.", method="POST", url=url)
        try:
            with httpx.Client(timeout=self._config.timeout_seconds, transport=self._transport) as c:
                r = c.post(url, params=params, json=json_body, headers=self._config.headers())
        except httpx.HTTPError as e:
            raise EhrError(f"Unable to call EHR endpoint: {e}", method="POST", url=url, params=params) from e
        if not r.is_success:
            raise EhrError(
                "Bad HTTP response from EHR endpoint",
                method="POST",
                url=url,
                params=params,
                status_code=r.status_code,
                response_body=r.text,
            )
        return r

    def get_provider_schedule(self, request: ProviderScheduleRequest) -> list[ScheduleSlot]:
        params = {
            "ProviderID": request.provider_id,
            "ProviderIDType": request.provider_id_type,
            "DepartmentID": request.department_id,
            "DepartmentIDType": request.department_id_type,
            "UserID": request.user_id,
            "UserIDType": request.user_id_type,
            "VisitTypeID": request.visit_type_id,
            "VisitTypeIDType": request.visit_type_id_type,
            "Date": format_date_with_slashes(request.date),
        }
        params = {k: v for k, v in params.items() if v is not None}
        r = self._post(PROVIDER_SCHEDULE_PATH, params=params)
        try:
            return parse_schedule_slots(r.json())
        except (ValueError, KeyError, TypeError) as e:
            raise EhrError(
                f"Unable to parse provider schedule: {e}",
                method="POST",
                url=str(r.request.url),
                params=params,
                status_code=r.status_code,
                response_body=r.text,
            ) from e

    def find_appointments(self, start_time: datetime, end_time: datetime) -> str:
        # No filters beyond the window: everything is cached and filtered later in memory
        body = {
            "resourceType": "Parameters",
            "parameter": [
                {"name": "startTime", "valueDateTime": _iso_instant(start_time)},
                {"name": "endTime", "valueDateTime": _iso_instant(end_time)},
            ],
        }
        r = self._post(APPOINTMENT_FIND_PATH, json_body=body)
        try:
            # Re-serialize so the cache always holds compact, valid JSON
            return json.dumps(r.json())
        except ValueError as e:
            raise EhrError(
                f"Unable to parse appointment find response: {e}",
                method="POST",
                url=str(r.request.url),
                params={"startTime": body["parameter"][0]["valueDateTime"], "endTime": body["parameter"][1]["valueDateTime"]},
                status_code=r.status_code,
                response_body=r.text,
            ) from e
