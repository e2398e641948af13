"""
Availability row builder: turns EHR schedule slots into bookable rows for one provider on one date.

Two classification strategies, selected per provider:
- VISIT_TYPE_FILTERED: one schedule read per (appointment type x department), scoped to the
  appointment type's EHR visit type. Every bookable slot becomes a row for that appointment type.
- DURATION_MATCHED: one schedule read per department, unscoped. A slot becomes one row per
  appointment type whose duration equals the slot length; slots with no matching duration are dropped.

Given identical slot source responses the builder returns identical rows. It never reads the clock.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol, Sequence

from caresync.core.constants import SlotClassification
from caresync.models.appointment_type import AppointmentType
from caresync.models.ehr_department import EhrDepartment
from caresync.models.institution import Institution
from caresync.models.provider import Provider
from caresync.services.ehr.base import SlotSource
from caresync.services.ehr.types import ProviderScheduleRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class AvailabilityRow:
    date_time: datetime  # naive, provider-local
    appointment_type_id: str
    ehr_department_id: str


@dataclass(frozen=True)
class AvailabilityRowSet:
    """Everything the reconciler needs to rewrite one provider/date."""
    provider_id: str
    date: date
    time_zone: str
    rows: tuple[AvailabilityRow, ...]


def _schedule_request(
    provider: Provider,
    institution: Institution,
    department: EhrDepartment,
    day: date,
    appointment_type: AppointmentType | None = None,
) -> ProviderScheduleRequest:
    return ProviderScheduleRequest(
        provider_id=provider.ehr_provider_id,
        provider_id_type=provider.ehr_provider_id_type,
        department_id=department.department_id,
        department_id_type=department.department_id_type,
        date=day,
        visit_type_id=appointment_type.ehr_visit_type_id if appointment_type else None,
        visit_type_id_type=appointment_type.ehr_visit_type_id_type if appointment_type else None,
        user_id=institution.ehr_user_id,
        user_id_type=institution.ehr_user_id_type,
    )


class ClassificationStrategy(Protocol):
    def build_rows(
        self,
        provider: Provider,
        institution: Institution,
        day: date,
        departments: Sequence[EhrDepartment],
        appointment_types: Sequence[AppointmentType],
        slot_source: SlotSource,
    ) -> list[AvailabilityRow]:
        ...


class VisitTypeFiltered:
    """Ask the EHR to pre-filter slots by each appointment type's visit type."""

    def build_rows(self, provider, institution, day, departments, appointment_types, slot_source):
        rows: list[AvailabilityRow] = []
        for appointment_type in appointment_types:
            for department in departments:
                request = _schedule_request(provider, institution, department, day, appointment_type)
                for slot in slot_source.get_provider_schedule(request):
                    if not slot.is_bookable:
                        continue
                    rows.append(
                        AvailabilityRow(
                            date_time=datetime.combine(day, slot.start_time),
                            appointment_type_id=appointment_type.appointment_type_id,
                            ehr_department_id=department.ehr_department_id,
                        )
                    )
        return rows


class DurationMatched:
    """Infer appointment types locally from slot length."""

    def build_rows(self, provider, institution, day, departments, appointment_types, slot_source):
        by_duration: dict[int, list[AppointmentType]] = defaultdict(list)
        for appointment_type in appointment_types:
            by_duration[appointment_type.duration_in_minutes].append(appointment_type)

        rows: list[AvailabilityRow] = []
        for department in departments:
            request = _schedule_request(provider, institution, department, day)
            for slot in slot_source.get_provider_schedule(request):
                date_time = datetime.combine(day, slot.start_time)
                matching = by_duration.get(slot.length_minutes)
                if not matching:
                    # Configuration gap, not an error
                    logger.info(
                        "No appointment type found for the %s-minute slot for %s in department %s on %s.",
                        slot.length_minutes,
                        provider.name,
                        department.department_id,
                        date_time,
                    )
                    continue
                if not slot.is_bookable:
                    continue
                for appointment_type in matching:
                    rows.append(
                        AvailabilityRow(
                            date_time=date_time,
                            appointment_type_id=appointment_type.appointment_type_id,
                            ehr_department_id=department.ehr_department_id,
                        )
                    )
        return rows


STRATEGIES: dict[SlotClassification, ClassificationStrategy] = {
    SlotClassification.VISIT_TYPE_FILTERED: VisitTypeFiltered(),
    SlotClassification.DURATION_MATCHED: DurationMatched(),
}


def strategy_for(provider: Provider) -> ClassificationStrategy:
    """Raises ValueError for an unknown classification (fails that provider, not the run)."""
    return STRATEGIES[SlotClassification(provider.slot_classification)]


def build_availability(
    provider: Provider,
    institution: Institution,
    day: date,
    departments: Sequence[EhrDepartment],
    appointment_types: Sequence[AppointmentType],
    slot_source: SlotSource,
) -> AvailabilityRowSet:
    rows = strategy_for(provider).build_rows(provider, institution, day, departments, appointment_types, slot_source)
    return AvailabilityRowSet(
        provider_id=provider.provider_id,
        date=day,
        time_zone=provider.time_zone,
        rows=tuple(rows),
    )


def format_availability_debug(provider_name: str, slot_classification: str, row_set: AvailabilityRowSet) -> str:
    """
    Multi-line summary for debug logs, e.g.

        Dr. Allen availability for 2020-04-27 (classification DURATION_MATCHED):
        Appointment Type ID a1: [09:00, 09:30, 10:00]
    """
    times_by_type: dict[str, list[str]] = defaultdict(list)
    for row in row_set.rows:
        times_by_type[row.appointment_type_id].append(row.date_time.strftime("%H:%M"))
    lines = [f"{provider_name} availability for {row_set.date.isoformat()} (classification {slot_classification}):"]
    for appointment_type_id in sorted(times_by_type):
        lines.append(f"Appointment Type ID {appointment_type_id}: [{', '.join(sorted(times_by_type[appointment_type_id]))}]")
    if len(lines) == 1:
        lines.append("[none]")
    return "\n".join(lines)
